from metaforge.core.save_context import (
    DEFAULT_IDENTITY_ID,
    DEFAULT_LAYER,
    SaveContext,
    SaveContextBuilder,
)


def test_known_model_is_copied_verbatim(primary_store):
    ctx, warnings = SaveContextBuilder(primary_store).build("Core")
    assert warnings == []
    assert ctx == SaveContext(identity_id=42, sequence_id=7, layer=12, name="Core", precedence=3)
    assert ctx.layer_name == "cus"


def test_model_lookup_is_case_insensitive(primary_store):
    ctx, warnings = SaveContextBuilder(primary_store).build("core")
    assert warnings == []
    assert ctx.identity_id == 42


def test_unknown_model_falls_back_with_warning(primary_store):
    ctx, warnings = SaveContextBuilder(primary_store).build("Elsewhere")
    assert ctx.identity_id == DEFAULT_IDENTITY_ID
    assert ctx.layer == DEFAULT_LAYER
    assert ctx.layer_name == "usr"
    assert ctx.name == "Elsewhere"
    assert warnings == ["Model 'Elsewhere' not found; using default identity and layer"]


def test_lookup_error_falls_back_with_warning():
    class ExplodingManifest:
        def read(self, name):
            raise OSError("manifest unavailable")

    class Store:
        models = ExplodingManifest()

    ctx, warnings = SaveContextBuilder(Store()).build("Core")
    assert ctx.identity_id == DEFAULT_IDENTITY_ID
    assert len(warnings) == 1 and "manifest unavailable" in warnings[0]


def test_store_without_manifest_uses_defaults():
    ctx, warnings = SaveContextBuilder(object()).build("Core")
    assert ctx.name == "Core"
    assert warnings


def test_dict_manifest_entries_are_supported():
    class Manifest:
        def read(self, name):
            return {"id": 9, "sequence": 2, "layer": 8, "name": "Isv"}

    class Store:
        models = Manifest()

    ctx, _ = SaveContextBuilder(Store()).build("isv")
    assert (ctx.identity_id, ctx.sequence_id, ctx.layer, ctx.name) == (9, 2, 8, "Isv")


def test_save_context_round_trips_through_dict():
    ctx = SaveContext(identity_id=3, sequence_id=1, layer=10, name="Var")
    assert SaveContext.from_dict(ctx.to_dict()) == ctx
