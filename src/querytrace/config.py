"""
Tracing configuration and SDK setup.

Settings can be built from a dictionary, the environment or a YAML file.
setup_tracing() turns them into an explicit TracerProvider and adapter; the
provider is never installed as the global one.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from pydantic import BaseModel, Field, ValidationError, field_validator

from querytrace import __version__
from querytrace.details import Details
from querytrace.errors import ConfigurationError
from querytrace.tracer import TracerAdapter

logger = logging.getLogger(__name__)

EXPORTERS = ("console", "otlp", "none")

ENV_PREFIX = "QUERYTRACE_"


class TracingSettings(BaseModel):
    """
    Operator-facing tracing settings.

    Only the exporter and sampling are configured here; what gets traced is
    chosen by ``details``.
    """

    service_name: str = Field(
        default="querytrace",
        description="Service name recorded on the tracing resource",
        min_length=1,
    )
    service_version: str = Field(
        default=__version__,
        description="Service version recorded on the tracing resource",
    )
    details: list[str] = Field(
        default_factory=lambda: ["all"],
        description="Names of traced operation families (scripting, retry, all, none)",
    )
    exporter: str = Field(
        default="none",
        description="Span exporter: console, otlp or none",
    )
    otlp_endpoint: str = Field(
        default="http://localhost:4317",
        description="OTLP gRPC collector endpoint",
    )
    sampling_ratio: float = Field(
        default=1.0,
        description="Fraction of root traces sampled",
        ge=0.0,
        le=1.0,
    )

    @field_validator("exporter")
    @classmethod
    def _check_exporter(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in EXPORTERS:
            raise ValueError(f"exporter must be one of {', '.join(EXPORTERS)}")
        return value

    @field_validator("details", mode="before")
    @classmethod
    def _split_details(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    @property
    def details_mask(self) -> Details:
        """Details mask resolved from ``details``."""
        return Details.from_names(self.details)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TracingSettings":
        """
        Create settings from a dictionary.

        Both snake_case and camelCase keys are accepted.

        Raises:
            ConfigurationError: If a value fails validation
        """
        aliases = {
            "serviceName": "service_name",
            "serviceVersion": "service_version",
            "otlpEndpoint": "otlp_endpoint",
            "samplingRatio": "sampling_ratio",
        }
        normalized = {aliases.get(key, key): value for key, value in data.items()}
        try:
            return cls(**normalized)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid tracing settings: {e}") from e

    @classmethod
    def from_env(
        cls,
        environ: Optional[dict[str, str]] = None,
        prefix: str = ENV_PREFIX,
    ) -> "TracingSettings":
        """
        Create settings from environment variables.

        ``<prefix>SERVICE_NAME``, ``<prefix>DETAILS`` and so on take
        precedence; the standard ``OTEL_SERVICE_NAME`` and
        ``OTEL_EXPORTER_OTLP_ENDPOINT`` variables are used as fallbacks.
        """
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {}

        fallbacks = {
            "service_name": "OTEL_SERVICE_NAME",
            "otlp_endpoint": "OTEL_EXPORTER_OTLP_ENDPOINT",
        }
        for name in cls.model_fields:
            value = env.get(f"{prefix}{name.upper()}")
            if value is None and name in fallbacks:
                value = env.get(fallbacks[name])
            if value is not None:
                data[name] = value

        return cls.from_dict(data)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "TracingSettings":
        """
        Load settings from a YAML file.

        The settings may sit at the top level or under a ``tracing`` key.

        Raises:
            ConfigurationError: If the file is missing or malformed
        """
        path = Path(path)
        try:
            data = yaml.safe_load(path.read_text()) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load tracing settings from {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Tracing settings in {path} must be a mapping")
        section = data.get("tracing", data)
        if not isinstance(section, dict):
            raise ConfigurationError(f"'tracing' section in {path} must be a mapping")
        return cls.from_dict(section)


@dataclass
class TracingSetup:
    """Everything setup_tracing() built."""
    provider: TracerProvider
    adapter: TracerAdapter
    details: Details

    def shutdown(self) -> None:
        """Flush pending spans and shut the provider down."""
        self.provider.shutdown()


def create_exporter(settings: TracingSettings) -> Optional[SpanExporter]:
    """
    Span exporter for the configured exporter name.

    Raises:
        ConfigurationError: If the OTLP exporter package is not installed
    """
    if settings.exporter == "none":
        return None
    if settings.exporter == "console":
        return ConsoleSpanExporter(service_name=settings.service_name)

    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
    except ImportError as e:
        raise ConfigurationError(
            "OTLP exporter requested but opentelemetry-exporter-otlp-proto-grpc "
            "is not installed; install querytrace[otlp]"
        ) from e
    return OTLPSpanExporter(endpoint=settings.otlp_endpoint)


def setup_tracing(settings: Optional[TracingSettings] = None) -> TracingSetup:
    """
    Build a tracer provider and adapter from settings.

    Args:
        settings: Tracing settings (defaults are used if None)

    Returns:
        TracingSetup with the provider, adapter and resolved details mask

    Raises:
        ConfigurationError: If settings cannot be applied
    """
    settings = settings or TracingSettings()
    details = settings.details_mask

    resource = Resource.create({
        SERVICE_NAME: settings.service_name,
        SERVICE_VERSION: settings.service_version,
    })
    provider = TracerProvider(
        resource=resource,
        sampler=ParentBased(TraceIdRatioBased(settings.sampling_ratio)),
    )

    exporter = create_exporter(settings)
    if exporter is not None:
        provider.add_span_processor(BatchSpanProcessor(exporter))

    adapter = TracerAdapter.from_provider(provider)
    logger.info(
        f"Tracing initialized for {settings.service_name} "
        f"(exporter={settings.exporter}, details={details!r}, "
        f"sampling_ratio={settings.sampling_ratio})"
    )
    return TracingSetup(provider=provider, adapter=adapter, details=details)
