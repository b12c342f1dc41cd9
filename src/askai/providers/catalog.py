"""Static catalogue of Hugging Face hosted models and their inference sub-providers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple


DEFAULT_SUB_PROVIDER = "novita"


@dataclass(frozen=True)
class SubProvider:
    id: str
    name: str
    max_tokens: int


@dataclass(frozen=True)
class CatalogModel:
    value: str
    label: str
    providers: Tuple[str, ...]
    auto_provider: str
    is_thinker: bool = False


SUB_PROVIDERS: Dict[str, SubProvider] = {
    p.id: p
    for p in (
        SubProvider("fireworks-ai", "Fireworks AI", 131_000),
        SubProvider("nebius", "Nebius AI Studio", 131_000),
        SubProvider("sambanova", "SambaNova", 32_000),
        SubProvider("novita", "NovitaAI", 16_000),
        SubProvider("hyperbolic", "Hyperbolic", 131_072),
        SubProvider("together", "Together AI", 128_000),
        SubProvider("groq", "Groq", 16_384),
    )
}

MODELS: Tuple[CatalogModel, ...] = (
    CatalogModel(
        value="deepseek-ai/DeepSeek-V3-0324",
        label="DeepSeek V3 O324",
        providers=("fireworks-ai", "nebius", "sambanova", "novita", "hyperbolic"),
        auto_provider="novita",
    ),
    CatalogModel(
        value="deepseek-ai/DeepSeek-R1-0528",
        label="DeepSeek R1 0528",
        providers=("fireworks-ai", "novita", "hyperbolic", "nebius", "together", "sambanova"),
        auto_provider="novita",
        is_thinker=True,
    ),
    CatalogModel(
        value="Qwen/Qwen3-Coder-480B-A35B-Instruct",
        label="Qwen3 Coder 480B A35B Instruct",
        providers=("novita", "hyperbolic", "together"),
        auto_provider="novita",
    ),
    CatalogModel(
        value="moonshotai/Kimi-K2-Instruct",
        label="Kimi K2 Instruct",
        providers=("together", "novita", "groq"),
        auto_provider="groq",
    ),
)


def find_model(name: str) -> Optional[CatalogModel]:
    """Look a model up by its repository id or its display label."""
    for model in MODELS:
        if name in (model.value, model.label):
            return model
    return None


def pick_sub_provider(model: CatalogModel, requested: Optional[str] = None) -> SubProvider:
    """Choose the upstream inference sub-provider for ``model``.

    An explicitly requested sub-provider wins when it is known. Otherwise the
    model's auto provider is used when it is listed for the model, then the
    first listed provider, then the global default.
    """
    if requested and requested in SUB_PROVIDERS:
        return SUB_PROVIDERS[requested]
    if model.auto_provider in model.providers and model.auto_provider in SUB_PROVIDERS:
        return SUB_PROVIDERS[model.auto_provider]
    if model.providers and model.providers[0] in SUB_PROVIDERS:
        return SUB_PROVIDERS[model.providers[0]]
    return SUB_PROVIDERS[DEFAULT_SUB_PROVIDER]
