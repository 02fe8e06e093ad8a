import pytest

from authportal.logger import get_logger
from authportal.navigation import (
    LAUNCH_URL_ENV,
    LaunchLocator,
    has_recovery_marker,
    parse_recovery_link,
    split_fragment,
)


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("authportal://login#reset-password", True),
        ("authportal://login#reset-password#access_token=a&refresh_token=b&type=recovery", True),
        ("authportal://login#access_token=a&type=recovery", True),
        ("authportal://login", False),
        ("authportal://login#", False),
        ("authportal://login#reset-password-later", False),
        ("authportal://login#type=signup", False),
    ],
)
def test_has_recovery_marker(url: str, expected: bool) -> None:
    assert has_recovery_marker(url) is expected


def test_split_fragment() -> None:
    assert split_fragment("authportal://login#a#b") == ("authportal://login", "a#b")
    assert split_fragment("authportal://login") == ("authportal://login", "")


def test_parse_recovery_link_reads_last_fragment_segment() -> None:
    link = parse_recovery_link(
        "authportal://login#reset-password#access_token=at&refresh_token=rt&expires_in=3600&type=recovery",
    )

    assert link is not None
    assert link.access_token == "at"
    assert link.refresh_token == "rt"
    assert link.has_tokens


def test_parse_recovery_link_without_tokens() -> None:
    link = parse_recovery_link("authportal://login#reset-password")

    assert link is not None
    assert not link.has_tokens


def test_parse_recovery_link_without_marker() -> None:
    assert parse_recovery_link("authportal://login#access_token=at") is None


def test_launch_locator_prefers_command_line(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(LAUNCH_URL_ENV, "authportal://from-env")

    locator = LaunchLocator.from_environment(["main.py", "authportal://from-argv"], get_logger("tests.nav"))

    assert locator.current() == "authportal://from-argv"


def test_launch_locator_replace_updates_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(LAUNCH_URL_ENV, "authportal://login#reset-password")
    locator = LaunchLocator.from_environment(["main.py"], get_logger("tests.nav"))

    locator.replace("authportal://login")

    assert locator.current() == "authportal://login"
    assert LaunchLocator.from_environment(["main.py"], get_logger("tests.nav")).current() == "authportal://login"


def test_launch_locator_defaults_to_empty(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(LAUNCH_URL_ENV, raising=False)

    locator = LaunchLocator.from_environment(["main.py"], get_logger("tests.nav"))

    assert locator.current() == ""
    assert parse_recovery_link(locator.current()) is None
