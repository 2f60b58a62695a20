"""
Classification backends.

The LLM backend pulls in librosa and the OpenAI SDK, so it is loaded
lazily; the protocol and the simulated backend are always available.
"""

import logging
from typing import Any, Dict

from sounddecoder.services.protocols import ClassificationService
from sounddecoder.services.simulated import (
    DEFAULT_DELAY,
    SIMULATED_RESULTS,
    SimulatedClassificationService,
)
from sounddecoder.utils.errors import ConfigurationError

__all__ = [
    "ClassificationService",
    "SimulatedClassificationService",
    "SIMULATED_RESULTS",
    "LLMClassificationService",
    "LLMClient",
    "create_classification_service",
]


def __getattr__(name: str):
    """Lazy load backends with heavy dependencies."""
    if name == "LLMClassificationService":
        from sounddecoder.services.llm import LLMClassificationService
        return LLMClassificationService
    elif name == "LLMClient":
        from sounddecoder.services.client import LLMClient
        return LLMClient
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def create_classification_service(config: Dict[str, Any]) -> ClassificationService:
    """
    Build the backend named by ``analysis.service``.

    Args:
        config: Full configuration dict

    Raises:
        ConfigurationError: Unknown service name
    """
    analysis_config = config.get('analysis', {})
    service_name = str(analysis_config.get('service', 'simulated')).lower()

    if service_name == "simulated":
        service: ClassificationService = SimulatedClassificationService(
            delay=analysis_config.get('simulated_delay', DEFAULT_DELAY),
            seed=analysis_config.get('seed'),
        )
    elif service_name == "llm":
        from sounddecoder.services.client import create_llm_client
        from sounddecoder.services.llm import LLMClassificationService

        service = LLMClassificationService(create_llm_client(config.get('llm', {})))
    else:
        raise ConfigurationError(
            f"Unknown analysis service: {service_name!r}. Valid options: simulated, llm",
            config_key="analysis.service",
        )

    logging.getLogger("services").info(f"Classification service: {service.name}")
    return service
