"""
Tests for the checkout login gate.
"""
from dataclasses import replace
from urllib.parse import parse_qs, urlsplit

from fastapi.testclient import TestClient

from verify_woo.config import settings
from verify_woo.main import app
from verify_woo.services.checkout import add_query_args, checkout_login_redirect
from verify_woo.services.sessions import session_store
from verify_woo.services.users import user_store


def test_redirect_url_carries_checkout_target():
    config = replace(
        settings,
        checkout_redirect=True,
        my_account_url="https://shop.test/my-account/",
        checkout_url="https://shop.test/checkout/",
    )

    url = checkout_login_redirect(config, is_logged_in=False)

    assert url == (
        "https://shop.test/my-account/"
        "?verifywoo_redirect_url=https%3A%2F%2Fshop.test%2Fcheckout%2F"
        "&verifywoo_msg=login_checkout_required"
    )


def test_no_redirect_when_disabled_or_logged_in():
    enabled = replace(settings, checkout_redirect=True)

    assert checkout_login_redirect(replace(settings, checkout_redirect=False), False) is None
    assert checkout_login_redirect(enabled, True) is None


def test_query_args_are_appended_to_existing_query():
    url = add_query_args("/my-account/?lang=fa", {"verifywoo_msg": "x"})

    assert parse_qs(urlsplit(url).query) == {"lang": ["fa"], "verifywoo_msg": ["x"]}


def test_checkout_endpoint_redirects_guests(monkeypatch):
    monkeypatch.setattr(
        "verify_woo.routers.checkout.settings", replace(settings, checkout_redirect=True)
    )
    client = TestClient(app)

    response = client.get("/checkout", follow_redirects=False)

    assert response.status_code == 302
    location = urlsplit(response.headers["location"])
    assert location.path == "/my-account/"
    assert parse_qs(location.query) == {
        "verifywoo_redirect_url": ["/checkout/"],
        "verifywoo_msg": ["login_checkout_required"],
    }


def test_checkout_endpoint_lets_logged_in_users_through(monkeypatch):
    monkeypatch.setattr(
        "verify_woo.routers.checkout.settings", replace(settings, checkout_redirect=True)
    )
    user = user_store.create_user({"user_login": "customer_1", "role": "customer"}, "1")
    client = TestClient(app)
    client.cookies.set(settings.session_cookie_name, session_store.create_session(user.id))

    assert client.get("/checkout", follow_redirects=False).status_code == 204
