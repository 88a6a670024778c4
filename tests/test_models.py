import pytest
from pydantic import ValidationError

from hdr.models import HttpInputConfig, RetryOptions, parse_duration


@pytest.mark.parametrize(
    "raw,seconds",
    [("250ms", 0.25), ("30s", 30.0), ("1m30s", 90.0), ("1.5h", 5400.0), ("0", 0.0)],
)
def test_parse_duration(raw, seconds):
    assert parse_duration(raw) == pytest.approx(seconds)


@pytest.mark.parametrize("raw", ["", "10", "abc", "5 s", "3d"])
def test_parse_duration_rejects_garbage(raw):
    with pytest.raises(ValueError):
        parse_duration(raw)


def test_retry_options_validate_durations():
    with pytest.raises(ValidationError):
        RetryOptions(delay="soon")


def test_headers_accept_table_strings_and_pairs():
    from_table = HttpInputConfig(url="http://x", headers={"Accept": "text/plain", "X-Id": "7"})
    from_strings = HttpInputConfig(url="http://x", headers=["Accept: text/plain", "X-Id:7"])
    from_pairs = HttpInputConfig(url="http://x", headers=[["Accept", "text/plain"], ["X-Id", "7"]])

    expected = [("Accept", "text/plain"), ("X-Id", "7")]
    assert from_table.headers == expected
    assert from_strings.headers == expected
    assert from_pairs.headers == expected


def test_header_without_colon_is_rejected():
    with pytest.raises(ValidationError):
        HttpInputConfig(url="http://x", headers=["Accept text/plain"])


def test_url_and_urls_are_exclusive_and_one_is_required():
    with pytest.raises(ValidationError):
        HttpInputConfig()
    with pytest.raises(ValidationError):
        HttpInputConfig(url="http://a", urls=["http://b"])


def test_resolved_defaults():
    cfg = HttpInputConfig(urls=["http://a", "http://b"], method="post")
    assert cfg.method == "POST"
    assert cfg.ticker_interval == 10
    assert cfg.success_severity == 6
    assert cfg.error_severity == 1
    assert cfg.targets() == ["http://a", "http://b"]
    assert HttpInputConfig(url="http://a").targets() == ["http://a"]


def test_severity_and_interval_bounds():
    with pytest.raises(ValidationError):
        HttpInputConfig(url="http://a", ticker_interval=0)
    with pytest.raises(ValidationError):
        HttpInputConfig(url="http://a", error_severity=8)
