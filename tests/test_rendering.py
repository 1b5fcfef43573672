"""Tests for the redirect strategy engine and the interstitial document."""

import datetime

import pytest

from dynalink.config import get_settings
from dynalink.enums import Platform
from dynalink.interstitial import SCRIPT_TEMPLATE, InterstitialScript, js_literal
from dynalink.rendering import (
    build_intent_url,
    build_mobile_targets,
    build_response,
    render_interstitial,
    render_social_preview,
)
from dynalink.schemas import LinkConfig

PAGE_URL = "https://go.example.com/aB3dE9f"


def make_config(**overrides) -> LinkConfig:
    now = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)
    fields = {
        "id": 1,
        "short_code": "aB3dE9f",
        "web_fallback_url": "https://example.com/landing",
        "created_at": now,
        "updated_at": now,
    }
    fields.update(overrides)
    return LinkConfig(**fields)


# ============================================================================
# INTENT URLS
# ============================================================================


class TestIntentUrl:
    def test_scheme_deep_link_with_package(self):
        store_url = "https://play.google.com/store/apps/details?id=com.example.app"
        intent = build_intent_url("myapp://content/42", "com.example.app", store_url)
        assert intent == (
            "intent://content/42#Intent;scheme=myapp;package=com.example.app;"
            "S.browser_fallback_url=https%3A%2F%2Fplay.google.com%2Fstore%2Fapps%2Fdetails%3Fid%3Dcom.example.app;end"
        )

    def test_host_only_deep_link_gets_root_path(self):
        intent = build_intent_url("myapp://home", "com.example.app", "https://example.com")
        assert intent.startswith("intent://home/#Intent;scheme=myapp;")

    @pytest.mark.parametrize("deep_link", ["content/42", "myapp:content", "://content/42", "myapp://", ""])
    def test_malformed_deep_link_gives_no_intent(self, deep_link):
        assert build_intent_url(deep_link, "com.example.app", "https://example.com") is None

    def test_missing_package_gives_no_intent(self):
        assert build_intent_url("myapp://content/42", None, "https://example.com") is None


# ============================================================================
# MOBILE TARGETS
# ============================================================================


class TestMobileTargets:
    def test_ios_store_url_from_app_store_id(self):
        targets = build_mobile_targets(make_config(ios_app_store_id="123456789"), Platform.IOS)
        assert targets.store_url == "https://apps.apple.com/app/id123456789"
        assert targets.deep_link is None

    def test_ios_store_url_falls_back_to_web(self):
        targets = build_mobile_targets(make_config(), Platform.IOS)
        assert targets.store_url == "https://example.com/landing"

    def test_android_targets(self):
        config = make_config(android_package_name="com.ex.app", android_deep_link="exapp://p/1")
        targets = build_mobile_targets(config, Platform.ANDROID)
        assert targets.store_url == "https://play.google.com/store/apps/details?id=com.ex.app"
        assert targets.deep_link == "exapp://p/1"
        assert targets.intent_url == (
            "intent://p/1#Intent;scheme=exapp;package=com.ex.app;"
            "S.browser_fallback_url=https%3A%2F%2Fplay.google.com%2Fstore%2Fapps%2Fdetails%3Fid%3Dcom.ex.app;end"
        )

    def test_android_without_package_uses_web_fallback_and_no_intent(self):
        targets = build_mobile_targets(make_config(android_deep_link="exapp://p/1"), Platform.ANDROID)
        assert targets.store_url == "https://example.com/landing"
        assert targets.intent_url is None
        assert targets.deep_link == "exapp://p/1"

    def test_web_platform_has_no_targets(self):
        with pytest.raises(ValueError):
            build_mobile_targets(make_config(), Platform.WEB)


# ============================================================================
# SOCIAL PREVIEW
# ============================================================================


class TestSocialPreview:
    def test_defaults_without_social_fields(self):
        html = render_social_preview(make_config(), PAGE_URL)
        assert "<title>Link</title>" in html
        assert 'content="Click the link for more information."' in html
        assert '<meta name="twitter:card" content="summary">' in html
        assert "og:image" not in html
        assert "twitter:image" not in html
        assert '<meta property="og:type" content="website">' in html

    def test_og_url_is_the_short_link(self):
        html = render_social_preview(make_config(), PAGE_URL)
        assert f'<meta property="og:url" content="{PAGE_URL}">' in html
        assert "https://example.com/landing" not in html

    def test_image_switches_card_type(self):
        config = make_config(social_image_url="https://cdn.example.com/p.png")
        html = render_social_preview(config, PAGE_URL)
        assert '<meta property="og:image" content="https://cdn.example.com/p.png">' in html
        assert '<meta name="twitter:image" content="https://cdn.example.com/p.png">' in html
        assert '<meta name="twitter:card" content="summary_large_image">' in html

    def test_values_are_html_escaped(self):
        config = make_config(
            social_title="<script>x</script>",
            social_description="Tom & \"Jerry\" 'live'",
        )
        html = render_social_preview(config, PAGE_URL)
        assert "<script>x</script>" not in html
        assert "&lt;script&gt;x&lt;/script&gt;" in html
        assert "Tom &amp; &quot;Jerry&quot; &#x27;live&#x27;" in html


# ============================================================================
# INTERSTITIAL
# ============================================================================


class TestInterstitial:
    def test_js_literal_neutralises_closing_script_tag(self):
        assert js_literal("a</script>b") == '"a<\\/script>b"'
        assert js_literal(None) == "null"

    def test_script_substitution_points(self):
        script = InterstitialScript(
            platform=Platform.IOS,
            store_url="https://apps.apple.com/app/id1",
            deep_link="myapp://x",
            open_delay_ms=500,
            fallback_delay_ms=2000,
        ).render()
        assert 'var platform = "ios";' in script
        assert 'var deepLink = "myapp://x";' in script
        assert "var intentUrl = null;" in script
        assert 'var storeUrl = "https://apps.apple.com/app/id1";' in script
        assert "var openDelayMs = 500;" in script
        assert "var fallbackDelayMs = 2000;" in script

    def test_ios_page(self):
        settings = get_settings()
        config = make_config(ios_app_store_id="123456789", ios_deep_link="myapp://item?id=1")
        page = render_interstitial(config, build_mobile_targets(config, Platform.IOS), settings)
        assert '<meta name="apple-itunes-app" content="app-id=123456789, app-argument=myapp%3A%2F%2Fitem%3Fid%3D1">' in page
        assert 'href="https://apps.apple.com/app/id123456789"' in page
        assert "Open App Store Now" in page
        assert f"var fallbackDelayMs = {settings.IOS_FALLBACK_DELAY_MS};" in page

    def test_ios_page_without_app_store_id_has_no_banner(self):
        config = make_config(ios_deep_link="myapp://item")
        page = render_interstitial(config, build_mobile_targets(config, Platform.IOS), get_settings())
        assert "apple-itunes-app" not in page
        assert 'href="https://example.com/landing"' in page

    def test_android_page(self):
        settings = get_settings()
        config = make_config(android_package_name="com.ex.app", android_deep_link="exapp://p/1")
        page = render_interstitial(config, build_mobile_targets(config, Platform.ANDROID), settings)
        assert "Open Google Play Now" in page
        assert "apple-itunes-app" not in page
        assert "intent://p/1#Intent;scheme=exapp;package=com.ex.app;" in page
        assert f"var fallbackDelayMs = {settings.ANDROID_FALLBACK_DELAY_MS};" in page

    def test_store_href_is_escaped(self):
        config = make_config(web_fallback_url='https://example.com/?a=1&b="2"')
        page = render_interstitial(config, build_mobile_targets(config, Platform.IOS), get_settings())
        assert 'href="https://example.com/?a=1&amp;b=&quot;2&quot;"' in page


def script_function(name: str) -> str:
    """Source of one top-level function of the interstitial script."""
    source = SCRIPT_TEMPLATE.template
    start = source.index(f"  function {name}(")
    end = source.find("\n  function ", start + 1)
    return source[start:] if end == -1 else source[start:end]


class TestInterstitialScriptBehaviour:
    def test_store_redirect_happens_at_most_once(self):
        body = script_function("redirectToStore")
        guard = body.index("if (hasRedirected || appOpened)")
        assert guard < body.index("hasRedirected = true;") < body.index("window.location.href = storeUrl;")

    def test_both_detectors_cancel_the_fallback_timer(self):
        detection = script_function("setupAppOpenDetection")
        assert "addEventListener('visibilitychange'" in detection
        assert "addEventListener('blur'" in detection
        assert detection.count("markAppOpened(") == 2

        mark = script_function("markAppOpened")
        assert "appOpened = true;" in mark
        assert "clearTimeout(fallbackTimerId);" in mark

    def test_ios_iframe_launch_precedes_direct_navigation(self):
        body = script_function("openApp")
        iframe = body.index("launchViaIframe(deepLink);")
        assert body.index("if (platform === 'ios')") < iframe < body.index("window.location.href = deepLink;")

    def test_intent_branch_returns_without_arming_fallback(self):
        body = script_function("openApp")
        intent_start = body.index("if (platform === 'android' && intentUrl")
        intent_end = body.index("}", intent_start)
        intent_branch = body[intent_start:intent_end]
        assert "navigator.userAgent.indexOf('Firefox') === -1" in intent_branch
        assert "window.location.href = intentUrl;" in intent_branch
        assert "return;" in intent_branch
        assert "setTimeout" not in intent_branch
        assert intent_end < body.index("fallbackTimerId = setTimeout(")

    def test_missing_deep_link_goes_straight_to_store(self):
        body = script_function("openApp")
        branch_start = body.index("if (!deepLink)")
        branch = body[branch_start : body.index("}", branch_start)]
        assert "redirectToStore();" in branch
        assert "return;" in branch


# ============================================================================
# STRATEGY
# ============================================================================


class TestBuildResponse:
    def test_web_redirects(self):
        response = build_response(make_config(), Platform.WEB, PAGE_URL, get_settings())
        assert response.status_code == 302
        assert response.headers["location"] == "https://example.com/landing"

    def test_crawler_gets_preview(self):
        response = build_response(make_config(), Platform.CRAWLER, PAGE_URL, get_settings())
        assert response.status_code == 200
        assert response.media_type == "text/html"
        assert b"og:title" in response.body

    @pytest.mark.parametrize("platform", [Platform.IOS, Platform.ANDROID])
    def test_mobile_gets_interstitial(self, platform):
        response = build_response(make_config(), platform, PAGE_URL, get_settings())
        assert response.status_code == 200
        assert b"Opening Application" in response.body
