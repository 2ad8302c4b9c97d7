# src/migrator/core/clients/shrink_client.py
import logging
import math
import os
import re
from typing import Any, Dict, Optional

import requests

from migrator.core.exceptions import ConfigurationError, ShrinkError
from migrator.core.managers.config_manager import ConfigManager

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.anthropic.com/v1/messages"
DEFAULT_API_VERSION = "2023-06-01"
DEFAULT_MODEL = "claude-sonnet-4-20250514"

CODE_BLOCK_PATTERN = re.compile(r"```html\s*([\s\S]*?)\s*```")

SHRINK_PROMPT = """<instruction>
You are reducing the markup of one fragment of a web page while keeping its visual result.

The fragment has {line_count} non-empty lines. Aim for about {target_lines} lines.

Rules:
1. Keep the root element and its {marker_attribute} attribute exactly as written.
2. Keep every {{{{widget-N}}}} token exactly as written and in the same order.
3. Merge inline styles onto fewer elements and drop wrappers that add no layout.
4. Do not invent content, links or images.

Return ONLY the reduced HTML, with no explanations and no markdown.
</instruction>

<fragment>
{fragment}
</fragment>"""


def count_lines(markup: str) -> int:
    return sum(1 for line in markup.split("\n") if line.strip())


def extract_html(response_text: str) -> str:
    """Pulls the HTML out of a model reply: a ```html block if present, else the whole reply."""
    match = CODE_BLOCK_PATTERN.search(response_text)
    if match:
        return match.group(1).strip()
    return response_text.strip()


class ClaudeShrinkClient:
    """
    Shrinks one fragment per call through the Anthropic Messages API.
    Any transport or response problem is raised as ShrinkError.
    """

    def __init__(
            self,
            api_key: str,
            api_url: str = DEFAULT_API_URL,
            api_version: str = DEFAULT_API_VERSION,
            model: str = DEFAULT_MODEL,
            max_tokens: int = 8000,
            temperature: float = 0.1,
            timeout: Optional[float] = None,
            marker_attribute: str = "wig-id",
            session: Optional[requests.Session] = None,
    ):
        if not api_key:
            raise ConfigurationError("Claude API key is required")
        self.api_key = api_key
        self.api_url = api_url
        self.api_version = api_version
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout
        self.marker_attribute = marker_attribute
        self._session = session

    def _get_session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def build_prompt(self, fragment_html: str) -> str:
        line_count = count_lines(fragment_html)
        return SHRINK_PROMPT.format(
            line_count=line_count,
            target_lines=max(1, math.ceil(line_count * 0.2)),
            marker_attribute=self.marker_attribute,
            fragment=fragment_html,
        )

    def build_request(self, fragment_html: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [{"role": "user", "content": self.build_prompt(fragment_html)}],
        }

    def shrink(self, fragment_html: str) -> str:
        headers = {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
        }
        try:
            response = self._get_session().post(
                self.api_url,
                json=self.build_request(fragment_html),
                headers=headers,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise ShrinkError(f"Unable to reach Claude API: {e}") from e

        if not response.ok:
            raise ShrinkError(f"Claude API error: {response.status_code} - {response.text}")

        try:
            data = response.json()
            text = data["content"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ShrinkError("Invalid response format from Claude API") from e
        if not text:
            raise ShrinkError("Invalid response format from Claude API")

        logger.debug("Claude response: %d chars", len(text))
        return extract_html(text)


class PassthroughShrinker:
    """Returns every fragment unchanged. Used for offline runs and tests."""

    def shrink(self, fragment_html: str) -> str:
        return fragment_html


def build_shrinker(config: ConfigManager):
    """Creates the shrink collaborator named by `shrink.provider`."""
    provider = (config.get_nested("shrink.provider", "claude") or "claude").lower()

    if provider == "passthrough":
        return PassthroughShrinker()
    if provider != "claude":
        raise ConfigurationError(f"Unknown shrink provider: {provider}")

    key_env = config.get_nested("shrink.api_key_env", "CLAUDE_API_KEY")
    api_key = os.environ.get(key_env)
    if not api_key:
        raise ConfigurationError(f"Environment variable {key_env} is not set")

    return ClaudeShrinkClient(
        api_key=api_key,
        api_url=config.get_nested("shrink.api_url", DEFAULT_API_URL),
        api_version=config.get_nested("shrink.api_version", DEFAULT_API_VERSION),
        model=config.get_nested("shrink.model", DEFAULT_MODEL),
        max_tokens=int(config.get_nested("shrink.max_tokens", 8000)),
        temperature=float(config.get_nested("shrink.temperature", 0.1)),
        timeout=config.get_nested("shrink.timeout"),
        marker_attribute=config.get_nested("components.marker_attribute", "wig-id"),
    )
