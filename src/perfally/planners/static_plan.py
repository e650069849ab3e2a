"""Rule-based remediation plan — failing performance checks mapped to known fixes.

Used whenever an AI plan is unavailable. Pure and deterministic.
"""

from __future__ import annotations

from perfally.grading import format_kib, format_ms
from perfally.schemas.lighthouse import PERFORMANCE, LighthouseAudit, LighthouseResult
from perfally.schemas.plans import IMPACT_ORDER, ActionItem, Impact


class _Fix:
    __slots__ = ("title", "fix", "impact")

    def __init__(self, title: str, fix: str, impact: Impact) -> None:
        self.title = title
        self.fix = fix
        self.impact = impact


# Lighthouse audit id -> fix guidance. Checks outside this table are not
# actionable without context and are left to the AI plan.
FIX_LOOKUP: dict[str, _Fix] = {
    "render-blocking-resources": _Fix(
        "Eliminate render-blocking resources",
        "Inline critical CSS and load the rest asynchronously; add defer to scripts that are not needed for first paint.",
        "high",
    ),
    "unused-javascript": _Fix(
        "Reduce unused JavaScript",
        "Split bundles by route, lazy-load components below the fold and drop libraries that are no longer used.",
        "high",
    ),
    "unused-css-rules": _Fix(
        "Reduce unused CSS",
        "Purge unused selectors at build time and load page-specific stylesheets only where they apply.",
        "medium",
    ),
    "server-response-time": _Fix(
        "Reduce server response time (TTFB)",
        "Cache rendered pages at the edge or CDN, and profile slow database queries and backend calls on the critical path.",
        "high",
    ),
    "largest-contentful-paint-element": _Fix(
        "Speed up the largest contentful element",
        "Preload the LCP image, serve it from the same origin or a CDN, and avoid lazy-loading it.",
        "high",
    ),
    "lcp-lazy-loaded": _Fix(
        "Don't lazy-load the LCP image",
        "Remove loading=\"lazy\" from the above-the-fold hero image and add fetchpriority=\"high\".",
        "high",
    ),
    "prioritize-lcp-image": _Fix(
        "Preload the LCP image",
        "Add <link rel=\"preload\" as=\"image\"> for the hero image so the browser discovers it early.",
        "high",
    ),
    "bootup-time": _Fix(
        "Reduce JavaScript execution time",
        "Defer third-party scripts, remove unused polyfills and move heavy computation off the main thread.",
        "high",
    ),
    "mainthread-work-breakdown": _Fix(
        "Minimize main-thread work",
        "Break up long tasks, reduce style recalculation and trim the amount of script parsed on load.",
        "high",
    ),
    "third-party-summary": _Fix(
        "Reduce the impact of third-party code",
        "Audit tags and widgets, remove the ones that are not earning their cost and load the rest after interaction.",
        "medium",
    ),
    "long-tasks": _Fix(
        "Avoid long main-thread tasks",
        "Split work into chunks under 50ms using scheduling (requestIdleCallback, setTimeout or scheduler.yield).",
        "medium",
    ),
    "uses-optimized-images": _Fix(
        "Efficiently encode images",
        "Compress images with an appropriate quality setting; most photos look identical at 75-85% quality.",
        "medium",
    ),
    "modern-image-formats": _Fix(
        "Serve images in modern formats",
        "Serve WebP or AVIF versions with a fallback via <picture> or an image CDN.",
        "medium",
    ),
    "uses-responsive-images": _Fix(
        "Properly size images",
        "Use srcset and sizes so mobile devices download images that match their viewport.",
        "medium",
    ),
    "offscreen-images": _Fix(
        "Defer offscreen images",
        "Add loading=\"lazy\" to images below the fold.",
        "medium",
    ),
    "unsized-images": _Fix(
        "Set explicit image dimensions",
        "Give every image width and height attributes (or an aspect-ratio) so the layout doesn't shift.",
        "medium",
    ),
    "uses-text-compression": _Fix(
        "Enable text compression",
        "Turn on Brotli or gzip for HTML, CSS, JS and JSON responses at the server or CDN.",
        "high",
    ),
    "uses-long-cache-ttl": _Fix(
        "Serve static assets with an efficient cache policy",
        "Set long Cache-Control max-age on fingerprinted assets (JS, CSS, fonts, images).",
        "low",
    ),
    "unminified-javascript": _Fix(
        "Minify JavaScript",
        "Enable minification in the production build.",
        "low",
    ),
    "unminified-css": _Fix(
        "Minify CSS",
        "Enable CSS minification in the production build.",
        "low",
    ),
    "font-display": _Fix(
        "Ensure text remains visible during font load",
        "Add font-display: swap (or optional) to @font-face rules.",
        "low",
    ),
    "uses-rel-preconnect": _Fix(
        "Preconnect to required origins",
        "Add <link rel=\"preconnect\"> for critical third-party origins such as font or image CDNs.",
        "low",
    ),
    "redirects": _Fix(
        "Avoid multiple page redirects",
        "Link directly to the final URL and collapse redirect chains to a single hop.",
        "medium",
    ),
    "total-byte-weight": _Fix(
        "Avoid enormous network payloads",
        "Trim page weight by compressing media, removing unused code and deferring non-critical resources.",
        "medium",
    ),
    "dom-size": _Fix(
        "Avoid an excessive DOM size",
        "Paginate or virtualize long lists and remove wrapper elements that serve no layout purpose.",
        "low",
    ),
    "duplicated-javascript": _Fix(
        "Remove duplicate modules in bundles",
        "Deduplicate dependencies so each library version ships once.",
        "low",
    ),
    "legacy-javascript": _Fix(
        "Avoid serving legacy JavaScript to modern browsers",
        "Target modern browsers in the build and ship polyfills only where needed.",
        "low",
    ),
    "layout-shifts": _Fix(
        "Avoid large layout shifts",
        "Reserve space for late-loading content such as ads, embeds and banners.",
        "medium",
    ),
}


def format_savings(audit: LighthouseAudit) -> str | None:
    """``"1.2s, 340 KiB"``-style savings string from the check's details."""
    details = audit.details
    if details is None:
        return None
    parts: list[str] = []
    ms = details.overall_savings_ms
    if ms is not None and ms > 0:
        parts.append(format_ms(ms))
    size = details.overall_savings_bytes
    if size is not None and size > 0:
        parts.append(format_kib(size))
    return ", ".join(parts) or None


def get_action_plan(payload: LighthouseResult | None) -> list[ActionItem]:
    """Fixes for failing performance checks, highest impact first.

    Checks are visited in the performance category's upstream order; the sort
    by impact is stable so that order survives within an impact level.
    """
    if payload is None:
        return []
    items: list[ActionItem] = []
    seen: set[str] = set()
    for audit in payload.audits_in(PERFORMANCE):
        if not audit.is_failing or audit.id in seen:
            continue
        seen.add(audit.id)
        fix = FIX_LOOKUP.get(audit.id)
        if fix is None:
            continue
        items.append(ActionItem(
            audit_id=audit.id,
            title=fix.title,
            fix=fix.fix,
            impact=fix.impact,
            savings=format_savings(audit),
        ))
    return sorted(items, key=lambda item: IMPACT_ORDER[item.impact])
