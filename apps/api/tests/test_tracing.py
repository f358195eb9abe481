from agowash_api.core.settings import Settings
from agowash_api.observability.tracing import build_tracer_provider


def test_tracer_provider_carries_service_resource() -> None:
    provider = build_tracer_provider(
        Settings(environment="staging"),
        service_name="agowash-api",
        service_version="1.2.3",
    )

    attributes = provider.resource.attributes
    assert attributes["service.name"] == "agowash-api"
    assert attributes["service.version"] == "1.2.3"
    assert attributes["deployment.environment"] == "staging"


def test_otlp_headers_parse_from_comma_separated_pairs() -> None:
    settings = Settings(otel_exporter_otlp_headers="x-api-key=abc, x-tenant = agowash,broken")

    assert settings.otel_exporter_otlp_headers == {"x-api-key": "abc", "x-tenant": "agowash"}
