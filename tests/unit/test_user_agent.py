"""
Unit Tests - User Agent Parsing
"""
from beacon_analytics.ingestion.user_agent import UserAgentAttributes, parse_user_agent

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
SAFARI_IPAD = (
    "Mozilla/5.0 (iPad; CPU OS 16_6 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.6 Mobile/15E148 Safari/604.1"
)
GOOGLEBOT = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"


class TestParseUserAgent:
    """Tests for the user-agent adapter"""

    def test_desktop_chrome(self):
        attrs = parse_user_agent(CHROME_WINDOWS)

        assert attrs.browser == "Chrome"
        assert attrs.browser_version.startswith("120")
        assert attrs.os == "Windows"
        assert attrs.device_type == "desktop"

    def test_mobile_safari(self):
        attrs = parse_user_agent(SAFARI_IPHONE)

        assert attrs.browser == "Mobile Safari"
        assert attrs.os == "iOS"
        assert attrs.device_type == "mobile"
        assert attrs.device_vendor == "Apple"
        assert attrs.device_model == "iPhone"

    def test_tablet(self):
        assert parse_user_agent(SAFARI_IPAD).device_type == "tablet"

    def test_bot(self):
        assert parse_user_agent(GOOGLEBOT).device_type == "bot"

    def test_unrecognised_string_falls_back(self):
        attrs = parse_user_agent("definitely-not-a-browser")

        assert attrs.browser == "Unknown"
        assert attrs.os == "Unknown"
        assert attrs.browser_version is None
        assert attrs.device_vendor is None
        assert attrs.device_type == "desktop"

    def test_empty_string_yields_defaults(self):
        assert parse_user_agent("") == UserAgentAttributes()
        assert parse_user_agent(None) == UserAgentAttributes()

    def test_attributes_as_dict_covers_dimension_columns(self):
        assert set(UserAgentAttributes().as_dict()) == {
            "browser",
            "browser_version",
            "os",
            "os_version",
            "device_type",
            "device_vendor",
            "device_model",
        }
