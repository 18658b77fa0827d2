# tests/test_finn_config.py
import pytest

from modules.finn_jobs.lib.config import DEFAULT_SEARCH_URL, DEFAULT_SQLITE_PATH, ConfigError, Settings


def test_defaults():
    s = Settings.from_env_and_kwargs(None)
    assert s.search_url == DEFAULT_SEARCH_URL
    assert s.max_jobs == 100
    assert s.max_concurrency == 10
    assert s.sqlite_path == DEFAULT_SQLITE_PATH
    assert s.proxy_url is None
    assert s.skip_network is False


def test_kwargs_are_coerced():
    s = Settings.from_env_and_kwargs(
        {"max_jobs": "25", "max_concurrency": 3, "request_timeout": "7.5", "skip_network": "yes"}
    )
    assert (s.max_jobs, s.max_concurrency, s.request_timeout, s.skip_network) == (25, 3, 7.5, True)


def test_env_fallbacks(monkeypatch, tmp_path):
    monkeypatch.setenv("FINN_JOBS_SQLITE_PATH", str(tmp_path / "env.db"))
    monkeypatch.setenv("FINN_JOBS_PROXY_URL", "http://user:pw@proxy.local:3128")
    s = Settings.from_env_and_kwargs({})
    assert s.sqlite_path == str(tmp_path / "env.db")
    assert s.proxy_url == "http://user:pw@proxy.local:3128"

    # explicit kwargs win
    s = Settings.from_env_and_kwargs({"sqlite_path": "x.db", "proxy_url": "https://p.local"})
    assert (s.sqlite_path, s.proxy_url) == ("x.db", "https://p.local")


@pytest.mark.parametrize(
    "kwargs",
    [
        {"search_url": "ftp://www.finn.no/job"},
        {"search_url": "https://www.example.com/job/fulltime/search.html"},
        {"search_url": "https://evilfinn.no/"},
        {"max_jobs": 0},
        {"max_jobs": 1001},
        {"max_jobs": "many"},
        {"max_jobs": True},
        {"max_concurrency": 0},
        {"request_timeout": -1},
        {"request_timeout": "soon"},
        {"proxy_url": "socks5://proxy.local:1080"},
    ],
)
def test_invalid_settings_raise_config_error(kwargs):
    with pytest.raises(ConfigError):
        Settings.from_env_and_kwargs(kwargs)


def test_finn_subdomains_and_bare_host_accepted():
    assert Settings.from_env_and_kwargs({"search_url": "https://finn.no/job/fulltime/search.html"})
    assert Settings.from_env_and_kwargs({"search_url": "http://m.finn.no/job/fulltime/search.html"})


def test_config_error_is_value_error():
    assert issubclass(ConfigError, ValueError)
