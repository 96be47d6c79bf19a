"""Google OAuth client settings used for access token refresh."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class GoogleOAuthSettings(IntegrationSettings):
    """Google OAuth client configuration.

    Only token *refresh* happens in this service; the consent flow that
    produces the refresh token lives elsewhere.

    Environment Variables:
        GOOGLE_CLIENT_ID: OAuth client ID shared by Gmail, Calendar and Drive
        GOOGLE_CLIENT_SECRET: OAuth client secret
        GOOGLE_TOKEN_ENDPOINT: Token endpoint (default: Google's OAuth2 endpoint)

    Example:
        ```python
        from infrastructure.configuration import settings

        client_id = settings.google_oauth.GOOGLE_CLIENT_ID
        ```
    """

    GOOGLE_CLIENT_ID: str = Field(default="", alias="GOOGLE_CLIENT_ID")
    GOOGLE_CLIENT_SECRET: str = Field(default="", alias="GOOGLE_CLIENT_SECRET")
    GOOGLE_TOKEN_ENDPOINT: str = Field(
        default="https://oauth2.googleapis.com/token",
        alias="GOOGLE_TOKEN_ENDPOINT",
    )
