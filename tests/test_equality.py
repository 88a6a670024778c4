import pytest

from hdr.equality import configs_equal
from hdr.models import HttpInputConfig

BASE = dict(
    urls=["http://a", "http://b"],
    method="GET",
    headers=[("Accept", "application/json"), ("X-Token", "abc")],
    body="",
    username="u",
    password="p",
    ticker_interval=30,
    success_severity=6,
    error_severity=1,
)


def _cfg(**overrides):
    return HttpInputConfig(**{**BASE, **overrides})


def test_identical_configs_are_equal():
    assert configs_equal(_cfg(), _cfg())


@pytest.mark.parametrize(
    "overrides",
    [
        {"method": "POST"},
        {"body": "x"},
        {"username": "other"},
        {"password": "other"},
        {"ticker_interval": 31},
        {"success_severity": 5},
        {"error_severity": 2},
    ],
)
def test_any_scalar_change_breaks_equality(overrides):
    assert not configs_equal(_cfg(), _cfg(**overrides))


def test_url_vs_urls():
    assert not configs_equal(HttpInputConfig(url="http://a"), HttpInputConfig(urls=["http://a"]))


def test_list_length_matters():
    assert not configs_equal(_cfg(), _cfg(urls=["http://a"]))
    assert not configs_equal(_cfg(), _cfg(headers=[("Accept", "application/json")]))


def test_list_order_matters():
    swapped = [("X-Token", "abc"), ("Accept", "application/json")]
    assert not configs_equal(_cfg(), _cfg(headers=swapped))
    assert not configs_equal(_cfg(), _cfg(urls=["http://b", "http://a"]))
