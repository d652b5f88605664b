"""Constants for competitor page extraction."""

# Regions that never hold article text; removed globally and again inside the selected region
NON_CONTENT_SELECTORS = [
    "script", "style", "noscript", "template", "svg",
    "nav", "header", "footer", "aside", "iframe",
    "[role=\"navigation\"]", "[role=\"banner\"]", "[role=\"contentinfo\"]",
    ".sidebar", ".ad", ".ads", ".advert", ".advertisement",
    ".comments", "#comments", ".comment-list", ".related-posts", ".related",
    ".social-share", ".share-buttons", ".sharedaddy", ".newsletter", ".subscribe",
    ".popup", ".modal", ".cookie-banner", ".breadcrumb", ".breadcrumbs",
]

# Probed in order; the first selector present in the page wins
CONTENT_SELECTORS = [
    # semantic containers
    "article",
    "[itemprop=\"articleBody\"]",
    # known content class patterns
    ".post-content",
    ".article-content",
    ".entry-content",
    ".blog-content",
    ".article-body",
    ".story-body",
    ".post-body",
    ".content",
    # generic containers
    "main",
    ".main-content",
    "[role=\"main\"]",
    ".post",
    ".blog-post",
    ".story",
    "#content",
]

TITLE_META_SELECTORS = [
    "meta[property=\"og:title\"]",
    "meta[name=\"twitter:title\"]",
]

DESCRIPTION_META_SELECTORS = [
    "meta[name=\"description\"]",
    "meta[property=\"og:description\"]",
    "meta[name=\"twitter:description\"]",
]

# Phrases that mark error, block or challenge pages rather than articles
BLOCKING_PHRASES = [
    "access denied",
    "404 not found",
    "page not found",
    "forbidden",
    "blocked",
    "captcha",
    "robot check",
]

ACCEPT_HEADER = "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8"

MAX_TITLE_CHARS = 200
MAX_DESCRIPTION_CHARS = 300
