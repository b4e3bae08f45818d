from __future__ import annotations

from datetime import datetime, timezone

from usermodel.context import hostname, update_flag, update_search, update_shopping
from usermodel.types import ContextFlag, FlagKind, UserModelState

NOW = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)


def test_hostname_normalises_to_registrable_domain() -> None:
    assert hostname("https://www.amazon.com/dp/B000") == "amazon.com"
    assert hostname("amazon.com/gp/cart") == "amazon.com"
    assert hostname("HTTPS://Smile.Amazon.COM.") == "amazon.com"
    assert hostname("http://[::1]:8080/") == "::1"
    assert hostname("") is None
    assert hostname(None) is None


def test_shopping_flag_set_on_trigger_host() -> None:
    url = "https://www.amazon.com/dp/B000"

    state = update_shopping(UserModelState(), url, NOW)

    assert state.shopping == ContextFlag(active=True, source_url=url, score=1.0, timestamp=NOW)
    assert state.search == ContextFlag()


def test_shopping_flag_cleared_on_other_host() -> None:
    state = update_shopping(UserModelState(), "https://amazon.com/", NOW)

    state = update_shopping(state, "https://news.example.org/story", NOW)

    assert state.shopping == ContextFlag()


def test_inactive_flag_and_other_host_is_noop() -> None:
    state = UserModelState()

    assert update_shopping(state, "https://example.org", NOW) is state
    assert update_search(state, "https://example.org", NOW) is state


def test_flags_are_independent() -> None:
    state = update_shopping(UserModelState(), "https://amazon.com/", NOW)

    state = update_search(state, "https://amazon.com/", NOW)
    assert state.shopping.active is True
    assert state.search.active is False

    state = update_search(state, "https://www.google.com/search?q=shoes", NOW)
    assert state.search.active is True
    assert state.shopping.active is True


def test_custom_trigger_hosts() -> None:
    state = update_flag(
        UserModelState(), FlagKind.SHOPPING, "https://shop.ebay.com/item", NOW, ["EBAY.com"]
    )

    assert state.shopping.active is True
    cleared = update_flag(state, FlagKind.SHOPPING, "https://amazon.com", NOW, ["ebay.com"])
    assert cleared.shopping == ContextFlag()
