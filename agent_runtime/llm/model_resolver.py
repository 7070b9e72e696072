# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Resolution of the provider and model used for a run."""

import logging

from dataclasses import dataclass
from typing import List, Optional

from ..errors import ConfigurationError
from ..types.agent_types import ModelOptions, ModelProvider, ModelSelection, ResolvedModel

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "openai"
DEFAULT_MODEL = "gpt-4o"


@dataclass(frozen=True)
class ProviderDefaults:
    name: str
    actual: str
    base_url: Optional[str] = None
    api_key: Optional[str] = None


# OpenAI-compatible providers that need no configuration beyond a model name
PROVIDER_DEFAULTS: dict[str, ProviderDefaults] = {
    d.name: d
    for d in (
        ProviderDefaults("ollama", "openai", "http://127.0.0.1:11434/v1", "ollama"),
        ProviderDefaults("lm-studio", "openai", "http://127.0.0.1:1234/v1", "lm-studio"),
        ProviderDefaults("volcengine", "openai", "https://ark.cn-beijing.volces.com/api/v3"),
        ProviderDefaults("deepseek", "openai", "https://api.deepseek.com/v1"),
    )
}


class ModelResolver:
    """Resolves run-time model overrides against the configured providers."""

    def __init__(
        self,
        options: Optional[ModelOptions] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.options = options or ModelOptions()
        self._logger = logger or logging.getLogger(__name__)
        self.default_selection = self._determine_default_selection()

    def _determine_default_selection(self) -> ModelSelection:
        if self.options.use is not None:
            return self.options.use

        providers = self.options.providers
        if providers and providers[0].models:
            first = providers[0]
            return ModelSelection(
                provider=first.name,
                model=first.models[0],
                base_url=first.base_url,
                api_key=first.api_key,
            )
        return ModelSelection()

    def _find_provider(self, name: str) -> Optional[ModelProvider]:
        return next((p for p in self.options.providers if p.name == name), None)

    def _find_provider_for_model(self, model: str) -> Optional[ModelProvider]:
        return next((p for p in self.options.providers if model in p.models), None)

    def resolve(self, run_model: Optional[str] = None, run_provider: Optional[str] = None) -> ResolvedModel:
        """Resolve the model for a run.

        Args:
            run_model: Model requested for this run, overriding the default
            run_provider: Provider requested for this run

        Returns:
            The resolved model selection

        Raises:
            ConfigurationError: if a provider is known but no model is
        """
        model, provider = run_model, run_provider
        base_url: Optional[str] = None
        api_key: Optional[str] = None

        if not model:
            model = self.default_selection.model
            provider = self.default_selection.provider
            base_url = self.default_selection.base_url
            api_key = self.default_selection.api_key

        if not provider and model:
            inferred = self._find_provider_for_model(model)
            if inferred is not None:
                provider = inferred.name
                base_url = inferred.base_url
                api_key = inferred.api_key
                self._logger.debug(f"Inferred provider {provider} for model {model}")
            else:
                provider = DEFAULT_PROVIDER
                self._logger.warning(
                    f"Could not infer provider for model {model}, defaulting to {provider}"
                )

        if not provider:
            provider = DEFAULT_PROVIDER
            model = model or DEFAULT_MODEL
            self._logger.warning(
                f"Missing model provider configuration, using provider {provider} and model {model}"
            )

        if not model:
            raise ConfigurationError(
                f"Missing model configuration for provider {provider}. "
                "Specify a model when calling Agent.run or in the agent options."
            )

        configured = self._find_provider(provider)
        if configured is not None:
            base_url = base_url or configured.base_url
            api_key = api_key or configured.api_key

        defaults = PROVIDER_DEFAULTS.get(provider)
        if defaults is not None:
            base_url = base_url or defaults.base_url
            api_key = api_key or defaults.api_key

        resolved = ResolvedModel(
            provider=provider,
            model=model,
            base_url=base_url,
            api_key=api_key,
            actual_provider=defaults.actual if defaults else provider,
        )
        self._logger.info(
            f"Resolved model: provider={resolved.provider} model={resolved.model} "
            f"base_url={resolved.base_url or 'default'} "
            f"api_key={'******' if resolved.api_key else 'default'} "
            f"actual_provider={resolved.actual_provider}"
        )
        return resolved

    def get_all_providers(self) -> List[ModelProvider]:
        """The configured providers with built-in defaults filled in."""
        providers = []
        for p in self.options.providers:
            defaults = PROVIDER_DEFAULTS.get(p.name)
            if defaults is None:
                providers.append(p)
                continue
            providers.append(
                p.model_copy(
                    update={
                        "name": defaults.actual,
                        "base_url": p.base_url or defaults.base_url,
                        "api_key": p.api_key or defaults.api_key,
                    }
                )
            )
        return providers
