"""
PageWriter: generates the content of one ebook page in a single LLM call.

The prompt gives the model the whole table of contents so each page stays on
its own topic and doesn't repeat its neighbours.
"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import HumanMessage

from ebookgen.config import config
from ebookgen.utils.logging import generator_logger as logger


# Length presets per content mode
CONTENT_MODES: Dict[str, Dict[str, Any]] = {
    "FULL": {
        "max_tokens": 600,
        "words": "400-500",
        "guidance": "Write detailed content of approximately 400-500 words.",
    },
    "MEDIUM": {
        "max_tokens": 450,
        "words": "250-300",
        "guidance": "Write concise content of approximately 250-300 words.",
    },
    "MINIMAL": {
        "max_tokens": 300,
        "words": "150-200",
        "guidance": "Write brief content of approximately 150-200 words.",
    },
    "ULTRA_MINIMAL": {
        "max_tokens": 150,
        "words": "50-100",
        "guidance": "Write a single short paragraph of approximately 50-100 words.",
    },
}

DEFAULT_CONTENT_MODE = "MEDIUM"

# Extra output tokens on top of the preset, so the model isn't cut mid-sentence
MAX_TOKENS_HEADROOM = 50


class GenerationError(Exception):
    """Raised when the text-generation service fails for a page."""
    pass


class GenerationTimeoutError(GenerationError):
    """Raised when a generation call exceeds its wall-clock timeout."""
    pass


def get_content_mode(content_mode: Optional[str]) -> Dict[str, Any]:
    """Preset for a content mode; unknown modes fall back to MEDIUM."""
    return CONTENT_MODES.get(content_mode or "", CONTENT_MODES[DEFAULT_CONTENT_MODE])


def build_table_of_contents(page_titles: Sequence[str], current_index: int) -> str:
    return "\n".join(
        f"{i + 1}. {title}{'  <-- YOU ARE HERE' if i == current_index else ''}"
        for i, title in enumerate(page_titles)
    )


class PageWriter:
    """
    Writes ebook pages with Claude.

    Retries are not done here: the worker's RetryPolicy decides, so the
    underlying client is created with max_retries=0.
    """

    def __init__(
        self,
        model_name: Optional[str] = None,
        temperature: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
        target_language: Optional[str] = None,
        api_key: Optional[str] = None,
    ):
        self.model_name = model_name or config.MODEL_NAME
        self.temperature = config.TEMPERATURE if temperature is None else temperature
        self.timeout_seconds = timeout_seconds or config.generation_timeout_seconds
        self.target_language = target_language or config.TARGET_LANGUAGE
        self.api_key = api_key or config.ANTHROPIC_API_KEY

        # One client per max_tokens budget
        self._llms: Dict[int, ChatAnthropic] = {}

    @property
    def timeout_ms(self) -> int:
        return int(self.timeout_seconds * 1000)

    def _get_llm(self, max_tokens: int) -> ChatAnthropic:
        if max_tokens not in self._llms:
            self._llms[max_tokens] = ChatAnthropic(
                model=self.model_name,
                temperature=self.temperature,
                max_tokens=max_tokens,
                anthropic_api_key=self.api_key,
                # wait_for enforces the real deadline; keep the HTTP timeout behind it
                timeout=self.timeout_seconds + 5,
                max_retries=0,
            )
        return self._llms[max_tokens]

    async def generate(
        self,
        document_title: str,
        document_description: str,
        page_title: str,
        page_index: int,
        content_mode: str,
        all_page_titles: List[str],
    ) -> str:
        """
        Generate the text of one page.

        Raises:
            GenerationTimeoutError: The call ran past the configured timeout
            GenerationError: Any other failure, wrapping the underlying message
        """
        mode = get_content_mode(content_mode)
        prompt = self.build_prompt(
            document_title=document_title,
            document_description=document_description,
            page_title=page_title,
            page_index=page_index,
            mode=mode,
            all_page_titles=all_page_titles,
        )

        logger.debug(
            f"Generating page {page_index + 1}",
            document_title=document_title[:40],
            content_mode=content_mode,
        )

        llm = self._get_llm(mode["max_tokens"] + MAX_TOKENS_HEADROOM)

        try:
            response = await asyncio.wait_for(
                llm.ainvoke([HumanMessage(content=prompt)]),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Generation timed out for page {page_index + 1}", timeout_ms=self.timeout_ms)
            raise GenerationTimeoutError(f"Generation timeout after {self.timeout_ms}ms")
        except Exception as e:
            logger.error(f"Generation failed for page {page_index + 1}", error=str(e))
            raise GenerationError(f"Failed to generate content: {e}") from e

        return self._extract_text(response.content)

    def build_prompt(
        self,
        document_title: str,
        document_description: str,
        page_title: str,
        page_index: int,
        mode: Dict[str, Any],
        all_page_titles: Sequence[str],
    ) -> str:
        """Build the page prompt."""
        page_number = page_index + 1
        table_of_contents = build_table_of_contents(all_page_titles, page_index)
        length_guidance = mode["guidance"]

        return f"""You are an expert writer creating the content of an ebook.
Ebook title: "{document_title}"
Description: "{document_description}"

Full table of contents:
{table_of_contents}

Your task is to write the content ONLY for Page {page_number}, titled "{page_title}".

Important instructions:
1. Take into account the overall context of the ebook given by the table of contents.
2. Focus strictly on the topic defined by this page's title ("{page_title}").
3. Avoid repeating information that was probably covered on earlier pages or will be covered on later pages; use the table of contents as a guide.
4. {length_guidance}
5. Write in {self.target_language}, in clear and engaging language.
6. Do NOT include the page title or page number in the content you write. Only the page text.
7. Do NOT write generic introductions or conclusions for this page; go straight to the point of the title.

Content of Page {page_number}:"""

    @staticmethod
    def _extract_text(content: Any) -> str:
        if isinstance(content, str):
            return content.strip()

        # Content blocks: [{"type": "text", "text": "..."}]
        parts = []
        for block in content or []:
            if isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
            elif isinstance(block, str):
                parts.append(block)
        return "".join(parts).strip()
