from urllib.parse import urlencode, urlsplit, urlunsplit

from verify_woo.config import Settings

CHECKOUT_LOGIN_MESSAGE = "login_checkout_required"


def add_query_args(url: str, args: dict[str, str]) -> str:
    parts = urlsplit(url)
    query = urlencode(args)
    if parts.query:
        query = f"{parts.query}&{query}"
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def checkout_login_redirect(config: Settings, is_logged_in: bool) -> str | None:
    """Return the login URL a guest must visit before checkout, if any."""
    if not config.checkout_redirect or is_logged_in:
        return None
    return add_query_args(
        config.my_account_url,
        {
            "verifywoo_redirect_url": config.checkout_url,
            "verifywoo_msg": CHECKOUT_LOGIN_MESSAGE,
        },
    )
