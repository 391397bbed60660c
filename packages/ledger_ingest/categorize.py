"""External classification fallback (OpenAI Responses API).

Public API:
    - :class:`FallbackClassifier`
    - :func:`default_fallback`

One call per unclassified transaction. Any failure (HTTP error, timeout,
malformed JSON, an answer outside the taxonomy) yields ``None`` and the
transaction stays in needs-review. Calls are never retried: the SDK client
is built with ``max_retries=0`` and a caller-imposed timeout.
"""

from __future__ import annotations

import json
import os
import time
from collections.abc import Mapping, Sequence
from typing import Any

from openai import OpenAI
from pydantic import ValidationError

from . import prompting
from .logging_setup import get_logger
from .models import FallbackDecision

_MODEL_ENV = "LEDGER_FALLBACK_MODEL"
_TIMEOUT_ENV = "LEDGER_FALLBACK_TIMEOUT"
_DEFAULT_MODEL = "gpt-4o-mini"
_DEFAULT_TIMEOUT_SEC = 10.0

_logger = get_logger("ledger_ingest.categorize")


def _extract_response_json_mapping(resp: Any) -> Mapping[str, Any]:
    """Decode the JSON mapping from an OpenAI Responses SDK result.

    Prefer ``resp.output_text``; fall back to ``resp.output[0].content[0].text``.
    Raise ``ValueError`` if text cannot be located or is not a JSON object.
    """

    text: str | None = getattr(resp, "output_text", None)
    if not text:
        output = getattr(resp, "output", None)
        content = getattr(output[0], "content", None) if output else None
        if content:
            txt_obj = getattr(content[0], "text", None)
            if isinstance(txt_obj, str):
                text = txt_obj
            else:
                # Some SDKs expose text as an object with a ``value`` string.
                maybe_val = getattr(txt_obj, "value", None)
                if isinstance(maybe_val, str):
                    text = maybe_val
    if not text or not isinstance(text, str):
        raise ValueError("Unexpected Responses API shape; unable to locate text output")

    try:
        decoded = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError("Model output was not valid JSON per the requested schema") from e
    if not isinstance(decoded, Mapping):
        raise ValueError("Model output must be a JSON object")
    return decoded


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        _logger.warning("categorize:bad_env name=%s value=%r", name, raw)
        return default


class FallbackClassifier:
    """Ask a language model for a category when no vendor rule matched.

    Parameters
    ----------
    taxonomy:
        Category rows (``code`` plus optional ``parent_code``) the answer must
        come from. Answers are matched case-insensitively against the codes.
    model, timeout:
        Override ``LEDGER_FALLBACK_MODEL`` / ``LEDGER_FALLBACK_TIMEOUT``.
    client:
        Pre-built client (tests inject a stub); otherwise an ``OpenAI`` client
        is created lazily on first use.
    """

    def __init__(
        self,
        taxonomy: Sequence[Mapping[str, Any]],
        *,
        model: str | None = None,
        timeout: float | None = None,
        client: Any = None,
    ) -> None:
        self.taxonomy = list(taxonomy)
        self.model = model or os.getenv(_MODEL_ENV) or _DEFAULT_MODEL
        self.timeout = timeout if timeout is not None else _env_float(_TIMEOUT_ENV, _DEFAULT_TIMEOUT_SEC)
        self._client = client
        self._by_folded = {
            str(c.get("code")).casefold(): str(c.get("code"))
            for c in self.taxonomy
            if c.get("code")
        }
        self._text_cfg = prompting.build_response_format(self.taxonomy)
        self._instructions = prompting.build_system_instructions()

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = OpenAI(timeout=self.timeout, max_retries=0)
        return self._client

    def resolve_category(self, name: str) -> str | None:
        """Map a model answer onto a known category code, or ``None``."""

        return self._by_folded.get(name.strip().casefold())

    def classify(self, tx: Mapping[str, Any]) -> str | None:
        """Return a category code for ``tx`` or ``None`` on any failure."""

        vendor = tx.get("normalized_vendor") or tx.get("raw_vendor")
        t0 = time.perf_counter()
        try:
            resp = self._get_client().responses.create(
                model=self.model,
                instructions=self._instructions,
                input=prompting.build_user_content(tx, self.taxonomy),
                text={"format": self._text_cfg},
                timeout=self.timeout,
            )
            decision = FallbackDecision.model_validate(dict(_extract_response_json_mapping(resp)))
        except (ValueError, ValidationError) as e:
            _logger.warning(
                "categorize:fallback_bad_output vendor=%r error=%s", vendor, e.__class__.__name__
            )
            return None
        except Exception as e:  # noqa: BLE001 - network/timeout/SDK errors degrade to needs-review
            dt_ms = (time.perf_counter() - t0) * 1000.0
            _logger.warning(
                "categorize:fallback_failed vendor=%r latency_ms=%.2f error=%s",
                vendor,
                dt_ms,
                e.__class__.__name__,
            )
            return None

        code = self.resolve_category(decision.category)
        if code is None:
            _logger.warning(
                "categorize:fallback_unknown_category vendor=%r category=%r",
                vendor,
                decision.category,
            )
            return None
        _logger.info(
            "categorize:fallback_done vendor=%r category=%s latency_ms=%.2f",
            vendor,
            code,
            (time.perf_counter() - t0) * 1000.0,
        )
        return code


def default_fallback(taxonomy: Sequence[Mapping[str, Any]]) -> FallbackClassifier | None:
    """Build the env-configured fallback, or ``None`` without ``OPENAI_API_KEY``."""

    if not os.getenv("OPENAI_API_KEY"):
        _logger.info("categorize:fallback_disabled reason=no_api_key")
        return None
    if not taxonomy:
        _logger.info("categorize:fallback_disabled reason=empty_taxonomy")
        return None
    return FallbackClassifier(taxonomy)


__all__ = ["FallbackClassifier", "default_fallback"]
