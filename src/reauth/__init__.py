"""reauth -- transparent re-authentication for intercepted HTTP traffic.

When an intercepted response comes back ``401 Unauthorized``, reauth looks
up the *profile* configured for the request's URL, performs that profile's
login exchange, extracts a fresh credential from the login response,
retries the original request with it and hands the retry's response back
to the caller as if the failure never happened.

Typical usage::

    from reauth.client import ReauthClient
    from reauth.config import load_settings

    with ReauthClient(load_settings()) as client:
        response = client.get("https://api.example.com/v1/users")

Modules:
    models: Pydantic models for profiles, settings and tokens.
    matching: URL pattern matching and specificity ranking.
    auth: Loop marker, rate limiter, token cache, extractor, injector,
        login request builder and the orchestrator.
    client: httpx interception transport and client wiring.
    services: Manual token injection on raw request bytes.
    config: XDG-aware settings persistence.
    output: stdout/stderr formatting for the CLI.
"""

__version__ = "0.3.0"
