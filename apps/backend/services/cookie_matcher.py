"""Select the stored cookies that belong to a requested website."""
from __future__ import annotations

import logging
from typing import Any, Iterable

from apps.backend.utils.domains import cookie_domain_key, is_same_or_subdomain, normalize_domain

logger = logging.getLogger(__name__)

# Sites whose session cookies are issued under sibling domains. Consulted only
# when the regular scan finds nothing; keys are matched as same-or-subdomain.
COOKIE_DOMAIN_FALLBACKS: dict[str, tuple[str, ...]] = {
    "chatgpt.com": ("openai.com", "chatgpt.com"),
}


def cookie_matches(cookie_domain: str, website: str) -> bool:
    """cookie_domain from cookie_domain_key(), website from normalize_domain()."""
    if not cookie_domain or not website:
        return False
    if cookie_domain == website:
        return True
    if cookie_domain.startswith("."):
        # parent-domain cookie, e.g. .chatgpt.com for chat.chatgpt.com
        return is_same_or_subdomain(website, cookie_domain[1:])
    return website.endswith("." + cookie_domain)


def _fallback_domains(website: str) -> tuple[str, ...]:
    for site, domains in COOKIE_DOMAIN_FALLBACKS.items():
        if is_same_or_subdomain(website, site):
            return domains
    return ()


def match_cookies(all_cookies: Iterable[dict[str, Any]], website: str) -> list[dict[str, Any]]:
    cookies = list(all_cookies or [])
    target = normalize_domain(website)
    matched = [c for c in cookies if cookie_matches(cookie_domain_key(c.get("domain")), target)]
    logger.debug("cookie match website=%s total=%s matched=%s", target, len(cookies), len(matched))
    if matched:
        return matched

    fallback = _fallback_domains(target)
    if fallback:
        matched = [
            c for c in cookies
            if any(d in (c.get("domain") or "").lower() for d in fallback)
        ]
        logger.info("cookie fallback website=%s domains=%s matched=%s", target, fallback, len(matched))
    if not matched:
        available = sorted({c.get("domain") for c in cookies if c.get("domain")})
        logger.info("no cookies for website=%s available=%s", target, available)
    return matched
