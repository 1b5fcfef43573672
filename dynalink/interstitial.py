"""Client-side behaviour of the mobile interstitial page.

The script runs in the recipient's browser and never calls back to the server.

Behaviour
=========
::
    page ready ──(open delay)──▶ openApp()
                                   │
        android + intent URL ──────┼──▶ location = intentUrl (intent carries its own fallback)
        no deep link ──────────────┼──▶ redirectToStore()
        deep link ─────────────────┴──▶ [ios: hidden iframe] + location = deepLink
                                          └─▶ arm fallback timer (ios 2s / android 3s)

    visibilitychange(hidden) ─┐
    window blur ──────────────┴──▶ appOpened = true, cancel fallback timer
    fallback timer ───────────────▶ redirectToStore() unless appOpened
    redirectToStore() runs at most once (hasRedirected).

Every value reaches the script through a named substitution point of
``InterstitialScript`` and is emitted as a JSON literal.
"""

import json
from dataclasses import dataclass
from string import Template

from dynalink.enums import Platform

__all__ = ["InterstitialScript", "js_literal"]

SCRIPT_TEMPLATE = Template(
    """(function() {
  var platform = $platform;
  var deepLink = $deep_link;
  var intentUrl = $intent_url;
  var storeUrl = $store_url;
  var openDelayMs = $open_delay_ms;
  var fallbackDelayMs = $fallback_delay_ms;

  var attemptedToOpenApp = false;
  var appOpened = false;
  var hasRedirected = false;
  var fallbackTimerId = null;

  function markAppOpened(source) {
    if (!attemptedToOpenApp || appOpened) {
      return;
    }
    console.log('App appears to have opened (' + source + ')');
    appOpened = true;
    if (fallbackTimerId !== null) {
      clearTimeout(fallbackTimerId);
      fallbackTimerId = null;
    }
  }

  function setupAppOpenDetection() {
    document.addEventListener('visibilitychange', function() {
      if (document.hidden) {
        markAppOpened('visibility changed');
      }
    });
    window.addEventListener('blur', function() {
      markAppOpened('window blur');
    });
  }

  function redirectToStore() {
    if (hasRedirected || appOpened) {
      return;
    }
    hasRedirected = true;
    window.location.href = storeUrl;
  }

  function startCountdown() {
    var remaining = Math.ceil(fallbackDelayMs / 1000);
    var counter = document.getElementById('countdown');
    document.getElementById('timeout-message').classList.remove('hidden');
    counter.textContent = remaining;
    var countdownInterval = setInterval(function() {
      remaining--;
      if (remaining <= 0 || appOpened || hasRedirected) {
        clearInterval(countdownInterval);
      } else {
        counter.textContent = remaining;
      }
    }, 1000);
  }

  function launchViaIframe(url) {
    try {
      var frame = document.createElement('iframe');
      frame.style.border = 'none';
      frame.style.width = '1px';
      frame.style.height = '1px';
      frame.style.position = 'absolute';
      frame.style.top = '-100px';
      frame.src = url;
      document.body.appendChild(frame);
      setTimeout(function() {
        if (frame.parentNode) {
          frame.parentNode.removeChild(frame);
        }
      }, 100);
    } catch (e) {
      console.error('Error with iframe approach:', e);
    }
  }

  function openApp() {
    attemptedToOpenApp = true;

    if (platform === 'android' && intentUrl && navigator.userAgent.indexOf('Firefox') === -1) {
      window.location.href = intentUrl;
      return;
    }

    if (!deepLink) {
      redirectToStore();
      return;
    }

    startCountdown();
    if (platform === 'ios') {
      launchViaIframe(deepLink);
    }
    try {
      window.location.href = deepLink;
    } catch (e) {
      console.error('Error opening deep link:', e);
      redirectToStore();
      return;
    }

    fallbackTimerId = setTimeout(function() {
      fallbackTimerId = null;
      if (!appOpened) {
        redirectToStore();
      }
    }, fallbackDelayMs);
  }

  function init() {
    setupAppOpenDetection();
    setTimeout(openApp, openDelayMs);
  }

  if (document.readyState === 'loading') {
    document.addEventListener('DOMContentLoaded', init);
  } else {
    init();
  }
})();"""
)


def js_literal(value: str | int | None) -> str:
    """Encode a value as a JavaScript literal that is safe inside a <script> element."""
    return json.dumps(value).replace("</", "<\\/")


@dataclass(frozen=True)
class InterstitialScript:
    platform: Platform
    store_url: str
    deep_link: str | None = None
    intent_url: str | None = None
    open_delay_ms: int = 500
    fallback_delay_ms: int = 3000

    def render(self) -> str:
        return SCRIPT_TEMPLATE.substitute(
            platform=js_literal(self.platform.value),
            deep_link=js_literal(self.deep_link),
            intent_url=js_literal(self.intent_url),
            store_url=js_literal(self.store_url),
            open_delay_ms=int(self.open_delay_ms),
            fallback_delay_ms=int(self.fallback_delay_ms),
        )
