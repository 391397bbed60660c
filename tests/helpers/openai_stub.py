"""Test helpers to stub the OpenAI Responses client used by categorize.py.

The stub pulls the single transaction JSON out of the user content and asks a
test-provided ``decide`` callable for the answer. ``decide`` returns a
category string, or an exception instance to simulate a failed call.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Callable
from typing import Any

BEGIN = "BEGIN_TRANSACTION\n"
END = "\nEND_TRANSACTION"


def _extract_transaction(user_content: str) -> dict[str, Any]:
    b = user_content.find(BEGIN)
    e = user_content.rfind(END)
    if b == -1 or e == -1 or e <= b:
        raise AssertionError("categorize: user content missing embedded transaction block")
    return json.loads(user_content[b + len(BEGIN) : e])


class OpenAIStub:
    """Minimal stub matching the ``openai.OpenAI`` shape used by the fallback.

    Parameters
    ----------
    decide:
        Receives the transaction mapping, returns a category name or an
        exception to raise.
    raw_output:
        When set, returned verbatim as ``output_text`` instead of a decision.
    """

    def __init__(
        self,
        decide: Callable[[dict[str, Any]], str | BaseException] | None = None,
        *,
        raw_output: str | None = None,
    ) -> None:
        self._decide = decide or (lambda _tx: "Sonstiges")
        self._raw_output = raw_output
        self._calls: list[dict[str, Any]] = []
        self._lock = threading.Lock()

        class _Responses:
            def __init__(self, outer: OpenAIStub) -> None:
                self._outer = outer

            def create(self, **kwargs):
                with self._outer._lock:
                    self._outer._calls.append(kwargs)
                tx = _extract_transaction(kwargs["input"])

                class _Resp:
                    output_text: str

                resp = _Resp()
                if self._outer._raw_output is not None:
                    resp.output_text = self._outer._raw_output
                    return resp
                answer = self._outer._decide(tx)
                if isinstance(answer, BaseException):
                    raise answer
                resp.output_text = json.dumps({"category": answer, "reasoning": "stub"})
                return resp

        self.responses = _Responses(self)

    @property
    def calls(self) -> list[dict[str, Any]]:
        return self._calls
