"""Cloud categorization tier (OpenAI Responses API).

Public API:
    - :class:`CloudCategorizer`

No client is created at import time; :meth:`CloudCategorizer.categorize`
builds one per call with the configured request timeout. SDK errors
propagate to the caller; the cascade maps them to "no result".
"""

from __future__ import annotations

import os
import time
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from openai import OpenAI
from openai.types.responses import ResponseTextConfigParam

from . import prompting
from .config import CloudConfig
from .logging_setup import get_logger
from .models import Categorization, CategorySource

_logger = get_logger("txn_pipeline.cloud")


def _response_text(resp: Any) -> str | None:
    """Prefer ``resp.output_text``; fall back to ``resp.output[0].content[0].text``."""

    text: str | None = getattr(resp, "output_text", None)
    if text:
        return text
    try:
        first = resp.output[0] if getattr(resp, "output", None) else None
        content = getattr(first, "content", None)
        if content:
            txt_obj = getattr(content[0], "text", None)
            if isinstance(txt_obj, str):
                return txt_obj
            maybe_val = getattr(txt_obj, "value", None)
            if isinstance(maybe_val, str):
                return maybe_val
    except Exception:  # noqa: BLE001 - tolerate SDK shape differences
        return None
    return None


class CloudCategorizer:
    def __init__(
        self,
        config: CloudConfig | None = None,
        *,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._config = config or CloudConfig()
        self._environ = environ

    @property
    def config(self) -> CloudConfig:
        return self._config

    def _api_key(self) -> str | None:
        env = os.environ if self._environ is None else self._environ
        key = (env.get(self._config.api_key_env) or "").strip()
        return key or None

    def is_configured(self) -> bool:
        """True when an API key is available."""

        return self._api_key() is not None

    def _create_client(self) -> OpenAI:
        return OpenAI(api_key=self._api_key(), timeout=self._config.timeout_seconds)

    def categorize(
        self, merchant_text: str, amount: Decimal | None = None
    ) -> Categorization | None:
        if not self.is_configured():
            return None
        client = self._create_client()
        text_cfg = ResponseTextConfigParam(format=prompting.build_response_format())
        t0 = time.perf_counter()
        resp = client.responses.create(
            model=self._config.model,
            instructions=prompting.build_system_instructions(),
            input=prompting.build_user_content(merchant_text, amount),
            text=text_cfg,
        )
        dt_ms = (time.perf_counter() - t0) * 1000.0
        text = _response_text(resp)
        if text is None:
            _logger.warning("cloud_no_output latency_ms=%.2f", dt_ms)
            return None
        result = prompting.parse_decision(text, CategorySource.CLOUD_MODEL)
        _logger.info(
            "cloud_categorized category=%s latency_ms=%.2f",
            result.category if result else None,
            dt_ms,
        )
        return result


__all__ = ["CloudCategorizer"]
