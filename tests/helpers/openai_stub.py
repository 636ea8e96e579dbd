"""Test helpers to stub the OpenAI Responses client used by ``cloud.py``.

The stub reads the transaction line embedded in the user content and returns
whatever the test's ``reply`` callable produces for it as ``output_text``.
Tests stay focused on inputs/outputs without touching the network.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from typing import Any

_MERCHANT_LINE = re.compile(r"^Merchant/Description: (.+)$", re.MULTILINE)


def merchant_from_user_content(user_content: str) -> str:
    m = _MERCHANT_LINE.search(user_content)
    if m is None:
        raise AssertionError("cloud: user content missing the Merchant/Description line")
    return json.loads(m.group(1))


class OpenAIStub:
    """Minimal stand-in for ``openai.OpenAI`` as used by the cloud tier.

    Parameters
    ----------
    reply:
        A callable receiving the merchant text and returning the raw model
        output text, or an exception instance to raise instead.
    calls_out:
        A list appended with each ``responses.create`` call's kwargs.
    """

    def __init__(
        self,
        reply: Callable[[str], str | BaseException],
        calls_out: list[dict[str, Any]] | None = None,
    ) -> None:
        self._reply = reply
        self._calls = calls_out if calls_out is not None else []
        self.client_kwargs: list[dict[str, Any]] = []

        class _Responses:
            def __init__(self, outer: OpenAIStub) -> None:
                self._outer = outer

            def create(self, **kwargs):
                self._outer._calls.append(kwargs)
                out = self._outer._reply(merchant_from_user_content(kwargs["input"]))
                if isinstance(out, BaseException):
                    raise out

                class _Resp:
                    output_text: str

                resp = _Resp()
                resp.output_text = out
                return resp

        self.responses = _Responses(self)

    def __call__(self, *args: Any, **kwargs: Any) -> OpenAIStub:
        # Used as the ``OpenAI`` class: constructing a client returns the stub.
        self.client_kwargs.append(kwargs)
        return self

    @property
    def calls(self) -> list[dict[str, Any]]:
        return self._calls


def decision_json(
    category: str,
    confidence: float | None = 0.9,
    *,
    merchant_name: str | None = None,
    subcategory: str | None = None,
) -> str:
    payload: dict[str, Any] = {
        "category": category,
        "subcategory": subcategory,
        "merchant_name": merchant_name,
        "reasoning": "stub",
    }
    if confidence is not None:
        payload["confidence"] = confidence
    return json.dumps(payload)
