"""Google OAuth login for the web app."""

import logging

from focusdesk.core.users import GoogleIdentity, OAuthTokens
from focusdesk.errors import AuthRequired, UpstreamUnavailable

logger = logging.getLogger(__name__)

SCOPES = [
    "openid",
    "https://www.googleapis.com/auth/calendar.readonly",
    "https://www.googleapis.com/auth/userinfo.email",
]
AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"


class GoogleOAuthClient:
    """Builds consent URLs and exchanges authorization codes for tokens."""

    def __init__(self, client_id: str, client_secret: str, redirect_uri: str, timeout: int = 20):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout

    def _flow(self):
        from google_auth_oauthlib.flow import Flow

        if not self.client_id or not self.client_secret:
            raise AuthRequired("Google OAuth client is not configured")

        client_config = {
            "web": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": AUTH_URI,
                "token_uri": TOKEN_URI,
                "redirect_uris": [self.redirect_uri],
            }
        }
        # Consent and callback are separate requests; no PKCE verifier to carry over
        return Flow.from_client_config(
            client_config,
            scopes=SCOPES,
            redirect_uri=self.redirect_uri,
            autogenerate_code_verifier=False,
        )

    def authorization_url(self) -> str:
        """URL that sends the browser to Google's consent screen."""
        url, _state = self._flow().authorization_url(access_type="offline", prompt="consent")
        return url

    def exchange_code(self, code: str) -> tuple[GoogleIdentity, OAuthTokens]:
        """Trade an authorization code for tokens and look up who logged in."""
        import requests
        from oauthlib.oauth2.rfc6749.errors import OAuth2Error

        if not code:
            raise AuthRequired("No authorization code provided")

        flow = self._flow()
        try:
            flow.fetch_token(code=code)
            resp = flow.authorized_session().get(USERINFO_URL, timeout=self.timeout)
        except OAuth2Error as e:
            raise AuthRequired(f"Google login failed: {e.error}")
        except requests.RequestException as e:
            raise UpstreamUnavailable(f"Google login failed: {e.__class__.__name__}")

        if resp.status_code != 200:
            raise UpstreamUnavailable(f"Userinfo lookup failed: HTTP {resp.status_code}")

        data = resp.json()
        creds = flow.credentials
        identity = GoogleIdentity(google_id=str(data["id"]), email=data.get("email", ""))
        tokens = OAuthTokens(access_token=creds.token, refresh_token=creds.refresh_token)
        logger.info(f"Google login for {identity.email}")
        return identity, tokens
