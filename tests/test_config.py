import os
import unittest
from unittest.mock import patch

import config


class ApiConfigTests(unittest.TestCase):
    def test_api_base_url_defaults(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            assert config.get_api_base_url() == "http://localhost:5000/api"

    def test_api_base_url_strips_trailing_slash(self) -> None:
        with patch.dict(
            os.environ,
            {"NEARBY_API_BASE_URL": "https://salons.example.com/api/"},
            clear=True,
        ):
            assert config.get_api_base_url() == "https://salons.example.com/api"

    def test_user_agent_defaults(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            assert config.get_api_user_agent() == "NearbySearch/1.0"


class TimingConfigTests(unittest.TestCase):
    def test_debounce_defaults_to_300ms(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            assert config.get_suggestion_debounce_seconds() == 0.3

    def test_debounce_reads_milliseconds(self) -> None:
        with patch.dict(os.environ, {"NEARBY_DEBOUNCE_MS": "120"}, clear=True):
            assert config.get_suggestion_debounce_seconds() == 0.12

    def test_invalid_values_fall_back_with_warning(self) -> None:
        with (
            patch.dict(os.environ, {"NEARBY_SETTLE_DELAY_MS": "soon"}, clear=True),
            self.assertLogs("config", level="WARNING") as logs,
        ):
            assert config.get_location_settle_delay_seconds() == 1.0
        assert "NEARBY_SETTLE_DELAY_MS" in logs.output[0]

    def test_negative_values_fall_back(self) -> None:
        with patch.dict(os.environ, {"NEARBY_DEBOUNCE_MS": "-5"}, clear=True):
            assert config.get_suggestion_debounce_seconds() == 0.3

    def test_autocomplete_limit_zero_uses_default(self) -> None:
        with patch.dict(os.environ, {"NEARBY_AUTOCOMPLETE_LIMIT": "0"}, clear=True):
            assert config.get_autocomplete_limit() == 8


class CorsConfigTests(unittest.TestCase):
    def test_cors_origins_parse_comma_separated(self) -> None:
        with patch.dict(
            os.environ,
            {"CORS_ALLOWED_ORIGINS": "https://a.example, https://b.example,,"},
            clear=True,
        ):
            assert config.get_cors_origins() == [
                "https://a.example",
                "https://b.example",
            ]

    def test_cors_origins_default_to_localhost(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            assert "http://localhost:3000" in config.get_cors_origins()
