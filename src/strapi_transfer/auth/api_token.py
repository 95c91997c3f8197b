"""API token authentication for the Strapi REST API."""


class APITokenAuth:
    """Bearer-token authentication.

    Strapi issues full-access or custom API tokens from the admin panel;
    transfers need read access on the source and write access (including
    the upload plugin) on the target.
    """

    def __init__(self, token: str) -> None:
        self._token = token.strip() if token else ""

    def get_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._token}"}

    def validate_token(self) -> bool:
        return bool(self._token)
