"""On-device categorization tier.

The runtime itself is supplied by the host application through the
:class:`LocalModel` protocol; this module only owns the prompt and the
parse contract, which are shared with the cloud tier.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol, runtime_checkable

from . import prompting
from .logging_setup import get_logger
from .models import Categorization, CategorySource

_logger = get_logger("txn_pipeline.on_device")

# Used when a local reply omits "confidence".
LOCAL_DEFAULT_CONFIDENCE = 0.7


@runtime_checkable
class LocalModel(Protocol):
    def is_ready(self) -> bool: ...

    def generate(self, prompt: str) -> str: ...


class OnDeviceCategorizer:
    def __init__(self, model: LocalModel) -> None:
        self._model = model

    def is_ready(self) -> bool:
        return self._model.is_ready()

    def categorize(
        self, merchant_text: str, amount: Decimal | None = None
    ) -> Categorization | None:
        if not self._model.is_ready():
            return None
        reply = self._model.generate(prompting.build_prompt(merchant_text, amount))
        result = prompting.parse_decision(
            reply,
            CategorySource.ON_DEVICE_MODEL,
            default_confidence=LOCAL_DEFAULT_CONFIDENCE,
        )
        _logger.debug("on_device_categorized category=%s", result.category if result else None)
        return result


__all__ = ["LOCAL_DEFAULT_CONFIDENCE", "LocalModel", "OnDeviceCategorizer"]
