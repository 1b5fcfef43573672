"""Requester classification into crawler, iOS, Android or web.

Order of checks:
  1. No user-agent, or the parser blows up  → web
  2. Parser flags an automated client, or a
     known crawler substring matches          → crawler
  3. OS family mentions android               → android
  4. OS family mentions ios / iphone / ipad   → ios
  5. Anything else (macOS, Windows, Linux…)   → web

Crawlers win over OS tokens: link-preview bots often claim a mobile OS and
must still receive the social preview document rather than an app-open page.
"""

import logging
import re

from user_agents import parse as parse_ua

from dynalink.enums import Platform

__all__ = ["CRAWLER_UA_PATTERN", "classify_requester"]

logger = logging.getLogger(__name__)

CRAWLER_UA_PATTERN: re.Pattern = re.compile(
    r"bot|crawl|slurp|spider|mediapartners|facebookexternalhit|pinterest|whatsapp|slackbot|twitterbot",
    re.IGNORECASE,
)

_IOS_TOKENS = ("ios", "iphone", "ipad")


def classify_requester(user_agent: str | None) -> Platform:
    if not user_agent:
        return Platform.WEB

    try:
        parsed = parse_ua(user_agent)
        os_family = (parsed.os.family or "").lower()
        is_bot = bool(parsed.is_bot)
    except Exception as exc:
        logger.warning(f"User-agent parsing failed, treating as web: {exc}")
        return Platform.WEB

    if is_bot or CRAWLER_UA_PATTERN.search(user_agent):
        return Platform.CRAWLER

    if not os_family:
        return Platform.WEB
    if "android" in os_family:
        return Platform.ANDROID
    if any(token in os_family for token in _IOS_TOKENS):
        return Platform.IOS
    return Platform.WEB
