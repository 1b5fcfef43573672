"""Redirect strategy engine: turns a link configuration and a requester
classification into the HTTP response.

Strategy Table
==============
::
    ┌────────────┬───────────────────────────────────────────────┐
    │ Platform   │ Response                                      │
    ├────────────┼───────────────────────────────────────────────┤
    │ crawler    │ 200 text/html social preview (OG + Twitter)   │
    │ ios        │ 200 text/html interstitial, App Store target  │
    │ android    │ 200 text/html interstitial, Play / intent URL │
    │ web        │ 302 to web_fallback_url                       │
    └────────────┴───────────────────────────────────────────────┘

Android Intent URL
==================
::
    deep link   myapp://content/42
    package     com.example.app
    intent URL  intent://content/42#Intent;scheme=myapp;package=com.example.app;
                S.browser_fallback_url=<urlencoded store url>;end

Key Behaviours
===============
- Unset optional fields skip their path; web_fallback_url is the final fallback.
- Every configuration value interpolated into HTML is escaped.
- A deep link without ``scheme://`` yields no intent URL, never an error.

Functions:
    build_response():  State machine over the requester classification.
    build_mobile_targets():  Per-platform deep link / store URL / intent URL.
    build_intent_url():  Android intent URL from a scheme deep link.
    render_social_preview():  Crawler metadata document.
    render_interstitial():  Mobile app-open page with its client script.
"""

import html
import logging
from dataclasses import dataclass
from string import Template
from urllib.parse import quote

from fastapi.responses import HTMLResponse, RedirectResponse, Response

from dynalink.config import Settings
from dynalink.enums import Platform
from dynalink.interstitial import InterstitialScript
from dynalink.schemas import LinkConfig

__all__ = [
    "MobileTargets",
    "app_store_url",
    "build_intent_url",
    "build_mobile_targets",
    "build_response",
    "play_store_url",
    "render_interstitial",
    "render_social_preview",
]

logger = logging.getLogger(__name__)

DEFAULT_SOCIAL_TITLE = "Link"
DEFAULT_SOCIAL_DESCRIPTION = "Click the link for more information."

# Same character set encodeURIComponent leaves untouched.
_URI_COMPONENT_SAFE = "-_.!~*'()"

INTERSTITIAL_TEMPLATE = Template(
    """<!DOCTYPE html>
<html>
<head>
  <title>Opening App</title>
  <meta name="viewport" content="width=device-width, initial-scale=1">
  $smart_banner
  <style>
    body {
      font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
      text-align: center;
      padding: 40px 20px;
      margin: 0;
      background-color: #f8f9fa;
      color: #333;
    }
    .container { max-width: 500px; margin: 0 auto; }
    h1 { margin-bottom: 10px; font-size: 24px; }
    .loader {
      border: 5px solid #f3f3f3;
      border-radius: 50%;
      border-top: 5px solid #3498db;
      width: 50px;
      height: 50px;
      animation: spin 1s linear infinite;
      margin: 30px auto;
    }
    @keyframes spin {
      0% { transform: rotate(0deg); }
      100% { transform: rotate(360deg); }
    }
    .fallback-btn {
      display: inline-block;
      margin-top: 20px;
      padding: 12px 24px;
      background-color: #3498db;
      color: white;
      text-decoration: none;
      border-radius: 4px;
      font-weight: bold;
    }
    .fallback-btn:hover { background-color: #2980b9; }
    #countdown { font-weight: bold; }
    .hidden { display: none; }
  </style>
</head>
<body>
  <div class="container">
    <h1>Opening Application</h1>
    <div class="loader"></div>
    <p id="redirect-message">Redirecting you to the app...</p>
    <p id="timeout-message" class="hidden">
      If the app doesn't open in <span id="countdown">$countdown_seconds</span> seconds,
      you'll be redirected to $store_name.
    </p>
    <a id="manual-button" href="$store_href" class="fallback-btn">Open $store_name Now</a>
  </div>
  <script>
$script
  </script>
</body>
</html>"""
)


@dataclass(frozen=True)
class MobileTargets:
    platform: Platform
    store_url: str
    deep_link: str | None = None
    package_name: str | None = None
    intent_url: str | None = None

    @property
    def store_name(self) -> str:
        return "App Store" if self.platform is Platform.IOS else "Google Play"


def app_store_url(app_store_id: str) -> str:
    return f"https://apps.apple.com/app/id{app_store_id}"


def play_store_url(package_name: str) -> str:
    return f"https://play.google.com/store/apps/details?id={package_name}"


def build_intent_url(deep_link: str | None, package_name: str | None, store_url: str) -> str | None:
    """Build an Android intent URL, or None when the deep link has no usable scheme."""
    if not deep_link or not package_name:
        return None
    try:
        scheme, sep, rest = deep_link.partition("://")
        if not sep or not scheme:
            return None
        host, _, path = rest.partition("/")
        if not host:
            return None
        fallback = quote(store_url, safe=_URI_COMPONENT_SAFE)
        return (
            f"intent://{host}/{path}#Intent;scheme={scheme};package={package_name};"
            f"S.browser_fallback_url={fallback};end"
        )
    except Exception as exc:
        logger.error(f"Failed to create intent URL from {deep_link!r}: {exc}")
        return None


def build_mobile_targets(config: LinkConfig, platform: Platform) -> MobileTargets:
    if platform is Platform.IOS:
        store_url = app_store_url(config.ios_app_store_id) if config.ios_app_store_id else config.web_fallback_url
        return MobileTargets(platform=platform, store_url=store_url, deep_link=config.ios_deep_link)

    if platform is Platform.ANDROID:
        package_name = config.android_package_name
        store_url = play_store_url(package_name) if package_name else config.web_fallback_url
        return MobileTargets(
            platform=platform,
            store_url=store_url,
            deep_link=config.android_deep_link,
            package_name=package_name,
            intent_url=build_intent_url(config.android_deep_link, package_name, store_url),
        )

    raise ValueError(f"No mobile targets for platform {platform!r}")


def render_social_preview(config: LinkConfig, page_url: str) -> str:
    title = html.escape(config.social_title or DEFAULT_SOCIAL_TITLE, quote=True)
    description = html.escape(config.social_description or DEFAULT_SOCIAL_DESCRIPTION, quote=True)
    image_url = html.escape(config.social_image_url, quote=True) if config.social_image_url else ""
    url = html.escape(page_url, quote=True)

    tags = [
        f"<title>{title}</title>",
        f'<meta name="description" content="{description}">',
        f'<meta property="og:title" content="{title}">',
        f'<meta property="og:description" content="{description}">',
        f'<meta property="og:url" content="{url}">',
    ]
    if image_url:
        tags.append(f'<meta property="og:image" content="{image_url}">')
    tags.append('<meta property="og:type" content="website">')
    tags.append(f'<meta name="twitter:card" content="{"summary_large_image" if image_url else "summary"}">')
    tags.append(f'<meta name="twitter:title" content="{title}">')
    tags.append(f'<meta name="twitter:description" content="{description}">')
    if image_url:
        tags.append(f'<meta name="twitter:image" content="{image_url}">')

    head = "\n  ".join(tags)
    return f'<!DOCTYPE html>\n<html>\n<head>\n  <meta charset="utf-8">\n  {head}\n</head>\n<body></body>\n</html>'


def _smart_banner(config: LinkConfig) -> str:
    if not config.ios_app_store_id:
        return ""
    content = f"app-id={config.ios_app_store_id}"
    if config.ios_deep_link:
        content += f", app-argument={quote(config.ios_deep_link, safe=_URI_COMPONENT_SAFE)}"
    return f'<meta name="apple-itunes-app" content="{html.escape(content, quote=True)}">'


def render_interstitial(config: LinkConfig, targets: MobileTargets, settings: Settings) -> str:
    fallback_delay_ms = (
        settings.IOS_FALLBACK_DELAY_MS if targets.platform is Platform.IOS else settings.ANDROID_FALLBACK_DELAY_MS
    )
    script = InterstitialScript(
        platform=targets.platform,
        store_url=targets.store_url,
        deep_link=targets.deep_link,
        intent_url=targets.intent_url,
        open_delay_ms=settings.INTERSTITIAL_OPEN_DELAY_MS,
        fallback_delay_ms=fallback_delay_ms,
    )
    return INTERSTITIAL_TEMPLATE.substitute(
        smart_banner=_smart_banner(config) if targets.platform is Platform.IOS else "",
        countdown_seconds=max(1, -(-fallback_delay_ms // 1000)),
        store_name=targets.store_name,
        store_href=html.escape(targets.store_url, quote=True),
        script=script.render(),
    )


def build_response(config: LinkConfig, platform: Platform, page_url: str, settings: Settings) -> Response:
    if platform is Platform.CRAWLER:
        logger.info(f"[Crawler Detect] Serving meta tags for {config.short_code}")
        return HTMLResponse(render_social_preview(config, page_url))

    if platform.is_mobile:
        targets = build_mobile_targets(config, platform)
        logger.info(
            f"[Routing] {platform.value} interstitial for {config.short_code} "
            f"(deep_link={'yes' if targets.deep_link else 'no'}, intent={'yes' if targets.intent_url else 'no'})"
        )
        return HTMLResponse(render_interstitial(config, targets, settings))

    logger.info(f"[Routing] web redirect for {config.short_code}")
    return RedirectResponse(url=config.web_fallback_url, status_code=302)
