from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Tuple

_log = logging.getLogger("metaforge.save_context")

DEFAULT_IDENTITY_ID = 1
DEFAULT_LAYER = 14  # usr
DEFAULT_SEQUENCE_ID = 0
DEFAULT_PRECEDENCE = 0

LAYER_NAMES = {
    0: "sys", 1: "syp", 2: "gls", 3: "glp", 4: "fpk", 5: "fpp", 6: "sln", 7: "slp",
    8: "isv", 9: "isp", 10: "var", 11: "vap", 12: "cus", 13: "cup", 14: "usr", 15: "usp",
}


@dataclass(frozen=True)
class SaveContext:
    identity_id: int
    sequence_id: int
    layer: int
    name: str
    precedence: int = DEFAULT_PRECEDENCE

    @property
    def layer_name(self) -> str:
        return LAYER_NAMES.get(self.layer, str(self.layer))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "SaveContext":
        return SaveContext(
            identity_id=int(d.get("identity_id", DEFAULT_IDENTITY_ID)),
            sequence_id=int(d.get("sequence_id", DEFAULT_SEQUENCE_ID)),
            layer=int(d.get("layer", DEFAULT_LAYER)),
            name=str(d.get("name", "")),
            precedence=int(d.get("precedence", DEFAULT_PRECEDENCE)),
        )


def default_save_context(model_name: str) -> SaveContext:
    return SaveContext(
        identity_id=DEFAULT_IDENTITY_ID,
        sequence_id=DEFAULT_SEQUENCE_ID,
        layer=DEFAULT_LAYER,
        name=model_name,
        precedence=DEFAULT_PRECEDENCE,
    )


class SaveContextBuilder:
    """
    Builds the identity/version/layer record that accompanies every write.

    The model is looked up in the primary store's manifest (``store.models``).
    An unknown model never blocks creation: defaults are used and a warning
    is returned alongside the context.
    """

    def __init__(self, primary_store: Any, logger: Optional[logging.Logger] = None):
        self._store = primary_store
        self._log = logger or _log

    def build(self, model_name: str) -> Tuple[SaveContext, List[str]]:
        warnings: List[str] = []
        manifest = getattr(self._store, "models", None)

        info = None
        if manifest is None:
            warnings.append(f"Primary store has no model manifest; using defaults for model '{model_name}'")
        else:
            try:
                info = manifest.read(model_name)
            except Exception as e:
                self._log.warning("Model lookup failed for %s: %s", model_name, e)
                warnings.append(f"Model lookup failed for '{model_name}': {e}; using defaults")
            else:
                if info is None:
                    warnings.append(f"Model '{model_name}' not found; using default identity and layer")

        if info is None:
            return default_save_context(model_name), warnings

        ctx = SaveContext(
            identity_id=_first_attr(info, ("identity_id", "id"), DEFAULT_IDENTITY_ID),
            sequence_id=_first_attr(info, ("sequence_id", "sequence"), DEFAULT_SEQUENCE_ID),
            layer=_first_attr(info, ("layer",), DEFAULT_LAYER),
            name=_first_attr(info, ("name",), model_name),
            precedence=_first_attr(info, ("precedence",), DEFAULT_PRECEDENCE),
        )
        self._log.debug(
            "save context model=%s id=%s layer=%s seq=%s",
            ctx.name, ctx.identity_id, ctx.layer_name, ctx.sequence_id,
        )
        return ctx, warnings


def _first_attr(obj: Any, names: Tuple[str, ...], default: Any) -> Any:
    for n in names:
        if isinstance(obj, dict):
            if n in obj and obj[n] is not None:
                return obj[n]
        elif getattr(obj, n, None) is not None:
            return getattr(obj, n)
    return default
