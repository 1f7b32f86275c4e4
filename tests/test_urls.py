import pytest

from mintauth.utils import normalize_endpoint_url


@pytest.mark.parametrize("url,expected", [
    ("https://mint.test", "https://mint.test"),
    ("https://mint.test/", "https://mint.test"),
    ("https://mint.test///", "https://mint.test"),
    ("  https://mint.test  ", "https://mint.test"),
    ("HTTPS://Mint.Test", "https://mint.test"),
    ("https://mint.test:443/", "https://mint.test"),
    ("http://mint.test:80", "http://mint.test"),
    ("https://mint.test:3338/", "https://mint.test:3338"),
    ("https://mint.test/Cashu/", "https://mint.test/Cashu"),
    ("https://mint.test/?q=1#frag", "https://mint.test"),
    ("http://[::1]:3338/", "http://[::1]:3338"),
])
def test_normalize(url, expected):
    """Test canonical spellings."""
    assert normalize_endpoint_url(url) == expected


@pytest.mark.parametrize("url", [
    "https://mint.test/",
    "HTTPS://MINT.TEST:443//path/",
    "http://user:pw@Mint.test:8080/a/",
])
def test_normalize_is_idempotent(url):
    """Test normalizing twice changes nothing."""
    once = normalize_endpoint_url(url)
    assert normalize_endpoint_url(once) == once


@pytest.mark.parametrize("url", ["", "   ", "mint.test", "/v1/info"])
def test_normalize_rejects_invalid(url):
    """Test URLs without scheme or host are rejected."""
    with pytest.raises(ValueError):
        normalize_endpoint_url(url)
