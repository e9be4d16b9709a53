from .config import load_integration_config


class IntegrationConfigMiddleware:
    """Attach a frozen snapshot of integration credentials to each request."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.integration_config = load_integration_config()
        return self.get_response(request)


def get_request_config(request):
    """Return the request's config, loading it if the middleware did not run."""
    config = getattr(request, "integration_config", None)
    if config is None:
        config = load_integration_config()
        request.integration_config = config
    return config
