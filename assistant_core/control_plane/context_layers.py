"""
Context layer resolution.

Layers are the data scopes a request may read. They are derived from the
intent alone; product_identity is always on and every other layer is
intent-gated. Handlers check the layer before each fetch.
"""

from typing import Dict, List

from domain.models import ContextLayerResult, ContextLayers, Intent


PRODUCT_IDENTITY_CONTEXT = {
    "name": "PitCrew",
    "company": "Leverege",
    "description": "This assistant operates in the context of PitCrew, a product developed by Leverege.",
}

_LAYER_BY_INTENT: Dict[Intent, Dict[str, bool]] = {
    Intent.SINGLE_MEETING: {"single_meeting": True},
    Intent.MULTI_MEETING: {"multi_meeting": True},
    Intent.PRODUCT_KNOWLEDGE: {"product_ssot": True},
    # Research answers are framed against our own product.
    Intent.EXTERNAL_RESEARCH: {"product_ssot": True},
    Intent.DOCUMENT_SEARCH: {"document_context": True},
    Intent.GENERAL_HELP: {},
    Intent.REFUSE: {},
    Intent.CLARIFY: {},
}

_LAYER_ORDER = (
    "product_identity",
    "product_ssot",
    "single_meeting",
    "multi_meeting",
    "document_context",
)


def compute_context_layers(intent: Intent) -> ContextLayers:
    """Return the layers enabled for *intent*."""
    return ContextLayers(product_identity=True, **_LAYER_BY_INTENT[intent])


def resolve_context_layers(intent: Intent) -> ContextLayerResult:
    """Return the layers for *intent* together with a readable reason."""
    layers = compute_context_layers(intent)
    extra = [name for name in enabled_layer_names(layers) if name != "product_identity"]
    if extra:
        reason = f"product_identity always enabled. {', '.join(extra)} enabled for {intent.value} intent."
    else:
        reason = f"product_identity always enabled. No additional layers for {intent.value} intent."
    return ContextLayerResult(layers=layers, reason=reason, intent=intent)


def can_access_product_ssot(layers: ContextLayers) -> bool:
    return layers.product_ssot


def can_access_single_meeting(layers: ContextLayers) -> bool:
    return layers.single_meeting


def can_access_multi_meeting(layers: ContextLayers) -> bool:
    return layers.multi_meeting


def can_access_documents(layers: ContextLayers) -> bool:
    return layers.document_context


def enabled_layer_names(layers: ContextLayers) -> List[str]:
    return [name for name in _LAYER_ORDER if getattr(layers, name)]
