"""
Bot detection utility module.

Classifies a User-Agent string as automated traffic using known crawler,
link-preview and headless-browser signatures. Sophisticated bots that spoof a
browser User-Agent are left to the per-IP rate limiter.
"""

import re

# Generic automation words
# "bot" only as a whole word; Android device models such as "CUBOT" never match
GENERIC_PATTERNS = [
    r"\bbot\b",
    r"adsbot",
    r"crawler",
    r"crawling",
    r"spider",
    r"scraper",
]

# Search engines
SEARCH_ENGINE_PATTERNS = [
    r"googlebot",
    r"google-inspectiontool",
    r"bingbot",
    r"bingpreview",
    r"slurp",
    r"duckduckbot",
    r"baiduspider",
    r"yandexbot",
    r"yandex\.com/bots",
    r"sogou web spider",
    r"exabot",
    r"applebot",
    r"petalbot",
    r"ahrefsbot",
    r"semrushbot",
    r"mj12bot",
]

# Social-media and chat link preview fetchers
LINK_PREVIEW_PATTERNS = [
    r"facebookexternalhit",
    r"facebookcatalog",
    r"twitterbot",
    r"linkedinbot",
    r"pinterestbot",
    r"whatsapp",
    r"slackbot",
    r"slack-imgproxy",
    r"telegrambot",
    r"discordbot",
    r"skypeuripreview",
    r"embedly",
    r"redditbot",
]

# Headless browsers and HTTP tooling
AUTOMATION_PATTERNS = [
    r"headlesschrome",
    r"headless",
    r"phantomjs",
    r"puppeteer",
    r"playwright",
    r"selenium",
    r"webdriver",
    r"lighthouse",
    r"python-requests",
    r"python-urllib",
    r"aiohttp",
    r"httpx",
    r"go-http-client",
    r"okhttp",
    r"java/\d",
    r"libwww-perl",
    r"^curl/",
    r"^wget/",
]

BOT_PATTERNS = GENERIC_PATTERNS + SEARCH_ENGINE_PATTERNS + LINK_PREVIEW_PATTERNS + AUTOMATION_PATTERNS

# Compile once
_bot_regex = re.compile("|".join(BOT_PATTERNS), re.IGNORECASE)


def is_bot(user_agent: str | None) -> bool:
    """
    Return True if the User-Agent matches a known bot signature.

    An empty or missing User-Agent is not treated as a bot; such requests
    still go through deduplication and rate limiting.

    Args:
        user_agent: User-Agent header string

    Returns:
        True for crawlers, preview fetchers and automation frameworks
    """
    if not user_agent:
        return False
    return _bot_regex.search(user_agent.strip()) is not None
