# miniapp_guide/model_props.py
from __future__ import annotations

from typing import Any, Dict, Optional, Tuple


OPENAI_PREFIXES = ("gpt-", "gpt4", "o1", "o3", "o4")

# preset -> (verbosity, reasoning effort)
MODEL_PRESETS: Dict[str, Tuple[Optional[str], Optional[str]]] = {
    "standard": ("low", "low"),
    "fast": ("low", "none"),
    "deep": ("medium", "high"),
}

VERBOSITY_TOKENS = {"low", "medium", "high"}
REASONING_TOKENS = {"none", "minimal", "low", "medium", "high"}


def is_openai_model(model_name: str) -> bool:
    name = (model_name or "").strip().lower()
    return any(name.startswith(p) for p in OPENAI_PREFIXES)


def parse_model_name(raw: str) -> Tuple[str, Dict[str, Any]]:
    """Split 'gpt-5.1_fast' or 'gpt-5.1_low_high' into (base_model, openai_params).

    Tokens after the base name are a preset, then verbosity, then reasoning
    effort. A plain name such as 'gpt-4o-mini' yields no extra params.
    """
    raw = (raw or "").strip()
    if not raw:
        raise ValueError("parse_model_name: No Model Name passed.")

    base, *suffixes = raw.split("_")
    verbosity: Optional[str] = None
    reasoning_effort: Optional[str] = None

    unknown = []
    for tok in suffixes:
        t = tok.strip().lower()
        if not t:
            continue
        if t in MODEL_PRESETS:
            p_verb, p_reason = MODEL_PRESETS[t]
            verbosity = verbosity or p_verb
            reasoning_effort = reasoning_effort or p_reason
        elif verbosity is None and t in VERBOSITY_TOKENS:
            verbosity = t
        elif reasoning_effort is None and t in REASONING_TOKENS:
            reasoning_effort = t
        else:
            unknown.append(t)

    if unknown:
        raise ValueError(f"parse_model_name: Unknown model suffix token(s) {unknown} in '{raw}'.")

    params: Dict[str, Any] = {}
    if verbosity is not None:
        params["text"] = {"verbosity": verbosity}
    if reasoning_effort is not None:
        params["reasoning"] = {"effort": reasoning_effort}
    return base, params
