"""Tests for nfc_router/security/auth.py — device bearer authentication."""

import pytest

from nfc_router.security.auth import authenticate

TOKEN = "device-secret-123"


class TestAuthenticate:

    def test_valid_token(self):
        assert authenticate(f"Bearer {TOKEN}", TOKEN) is True

    def test_scheme_is_case_insensitive(self):
        assert authenticate(f"bearer {TOKEN}", TOKEN) is True

    @pytest.mark.parametrize(
        "header",
        [
            None,
            "",
            TOKEN,  # no scheme
            f"Basic {TOKEN}",
            "Bearer",
            "Bearer ",
            "Bearer wrong-token",
            f"Bearer {TOKEN}extra",
            f"Bearer {TOKEN[:-1]}",
        ],
    )
    def test_rejections(self, header):
        assert authenticate(header, TOKEN) is False

    def test_unconfigured_secret_rejects_everything(self):
        assert authenticate("Bearer ", "") is False
        assert authenticate("Bearer anything", "") is False

    def test_non_ascii_token_does_not_raise(self):
        assert authenticate("Bearer tökén", TOKEN) is False
