"""
Quality gate: reject listings that are not a purchasable instance of the product.

Runs on the raw title before normalization so junk never reaches the
matcher. The rules are a tagged denylist, not a classifier:

    - false negatives (junk slipping through) are expected; the matcher's
      thresholds catch most of them
    - false positives (rejecting a real product) are the costly failure, so
      every pattern is anchored at word boundaries and scoped narrowly

Example: "OEM" is junk ("OEM earphones" = unbranded clone) unless it is
followed by "driver"/"diaphragm", since OEM drivers are a legitimate feature.
"""

import enum
import re
from typing import List, NamedTuple, Pattern


class JunkCategory(enum.Enum):
    COUNTERFEIT = "counterfeit"
    ACCESSORY = "accessory"
    WHOLESALE = "wholesale"
    SPAM = "spam"
    NON_AUDIO = "non_audio"


class JunkRule(NamedTuple):
    name: str
    category: JunkCategory
    pattern: Pattern


def _rule(name: str, category: JunkCategory, pattern: str) -> JunkRule:
    return JunkRule(name, category, re.compile(pattern, re.IGNORECASE))


# ---------------------------------------------------------------------------
# Junk rules
# ---------------------------------------------------------------------------

JUNK_RULES: List[JunkRule] = [
    # Counterfeit / clone indicators
    _rule("copy", JunkCategory.COUNTERFEIT, r"\bcopy\b"),
    _rule("replica", JunkCategory.COUNTERFEIT, r"\breplica\b"),
    _rule("clone", JunkCategory.COUNTERFEIT, r"\bclone\b"),
    _rule("fake", JunkCategory.COUNTERFEIT, r"\bfake\b"),
    _rule("imitation", JunkCategory.COUNTERFEIT, r"\bimitation\b"),
    _rule("oem", JunkCategory.COUNTERFEIT, r"\bOEM\b(?!\s+(?:driver|diaphragm))"),

    # Accessory-only listings
    _rule("case_only", JunkCategory.ACCESSORY, r"\bcase\s+only\b"),
    _rule("silicone_cover", JunkCategory.ACCESSORY, r"\bsilicone\s+(?:cover|case|sleeve)\b"),
    _rule("protective_case", JunkCategory.ACCESSORY, r"\bprotective\s+case\b"),
    _rule("screen_protector", JunkCategory.ACCESSORY, r"\bscreen\s+protector\b"),
    _rule("sticker", JunkCategory.ACCESSORY, r"\bsticker\b"),
    _rule("wrist_strap", JunkCategory.ACCESSORY, r"\bwrist\s*(?:band|strap)\b"),
    _rule("cleaning_kit", JunkCategory.ACCESSORY, r"\bcleaning\s+kit\b"),
    _rule("wall_mount_charger", JunkCategory.ACCESSORY, r"\bwall\s+(?:mount|charger)\b"),
    _rule("phone_holder", JunkCategory.ACCESSORY, r"\bphone\s+holder\b"),
    _rule("car_charger", JunkCategory.ACCESSORY, r"\bcar\s+charger\b"),
    _rule("power_bank", JunkCategory.ACCESSORY, r"\bpower\s+bank\b"),
    _rule("selfie_stick", JunkCategory.ACCESSORY, r"\bselfie\s+stick\b"),

    # Wholesale / bulk lots
    _rule("factory_direct", JunkCategory.WHOLESALE, r"\bfactory\s+direct\b"),
    _rule("wholesale", JunkCategory.WHOLESALE, r"\bwholesale\b"),
    _rule("lot_of", JunkCategory.WHOLESALE, r"\blot\s+of\s+\d+\b"),
    _rule("multi_pack", JunkCategory.WHOLESALE, r"\b\d+\s*(?:pcs|pieces|pack|sets)\b"),

    # Spam / marketing superlatives
    _rule("year_new_upgraded", JunkCategory.SPAM, r"\b20\d{2}\s+NEW\s+UPGRADED\b"),
    _rule("best_price", JunkCategory.SPAM, r"\bbest\s+(?:price|deal|offer)\b"),
    _rule("free_gift", JunkCategory.SPAM, r"\bfree\s+gift\b"),
    _rule("buy_n_get", JunkCategory.SPAM, r"\bbuy\s+\d+\s+get\b"),
    _rule("flash_sale", JunkCategory.SPAM, r"\bflash\s+sale\b"),
    _rule("clearance_sale", JunkCategory.SPAM, r"\bclearance\s+sale\b"),

    # Non-audio products that slip through keyword search
    _rule("speaker_lamp", JunkCategory.NON_AUDIO, r"\bbluetooth\s+speaker\s+(?:light|lamp|clock)\b"),
    _rule("karaoke", JunkCategory.NON_AUDIO, r"\bkaraoke\b"),
    _rule("hearing_aid", JunkCategory.NON_AUDIO, r"\bhearing\s+aid\b"),
    _rule("walkie_talkie", JunkCategory.NON_AUDIO, r"\bwalkie\s+talkie\b"),
    _rule("translator", JunkCategory.NON_AUDIO, r"\btranslator\b"),
    _rule("smartwatch", JunkCategory.NON_AUDIO, r"\bsmart\s*watch\b"),
    _rule("conduction_glasses", JunkCategory.NON_AUDIO, r"\bbone\s+conduction\s+(?:glasses|sunglasses)\b"),
]


def junk_signals(title, rules: List[JunkRule] = JUNK_RULES) -> List[JunkRule]:
    """Every rule that fires on the title, in rule order."""
    if not isinstance(title, str) or not title.strip():
        return []
    return [rule for rule in rules if rule.pattern.search(title)]


def is_junk(title, rules: List[JunkRule] = JUNK_RULES) -> bool:
    """True if any junk rule fires on the raw title."""
    if not isinstance(title, str) or not title.strip():
        return False
    return any(rule.pattern.search(title) for rule in rules)


# ---------------------------------------------------------------------------
# Marketplace title cleaning
# ---------------------------------------------------------------------------

# Marketplace titles (AliExpress and friends) stack marketing words around the
# model name. The cleaned title is only used for matching; the stored title
# is left untouched.

_YEAR_PREFIX_RE = re.compile(r"^\s*20\d{2}\s+(?:NEW|NEWEST|LATEST|UPGRADED?)\s+", re.IGNORECASE)

_MARKETPLACE_NOISE_RE = re.compile(
    r"(?:\b(?:20\d{2}|NEW|NEWEST|LATEST|UPGRADED?|HOT\s+SALE|BEST\s+SELLING|TOP\s+QUALITY|"
    r"ORIGINAL|GENUINE|AUTHENTIC|OFFICIAL|HIGH\s+QUALITY|BRAND\s+NEW|IN\s+STOCK|"
    r"FAST\s+SHIPPING|FREE\s+SHIPPING|SUPER|FASHION)\b|\b100%)",
    re.IGNORECASE,
)

_TRAILING_VARIANT_RE = re.compile(
    r"\s*[-/]\s*(?:with\s+mic|without\s+mic|type[\s-]?c|3\.5mm|usb[\s-]?c|bluetooth|wired|wireless|"
    r"black|white|silver|gold|red|blue|green|pink|purple|grey|gray)\s*$",
    re.IGNORECASE,
)

_PAREN_NOISE_RE = re.compile(r"\s*\((?:New|Upgraded|Latest|Official|Original|20\d{2})[^)]*\)\s*$", re.IGNORECASE)

# "Hi-Fi" as a marketing word, but not inside brands like HiFiGo or HiFi Audio
_HIFI_RE = re.compile(r"\bHi-?Fi\b(?!\s*(?:Audio|Go|Man|MAN))", re.IGNORECASE)


def clean_marketplace_title(title) -> str:
    """
    Strip marketplace marketing noise from a title before matching.

    Examples:
        '2024 NEW UPGRADED KZ ZS10 Pro HiFi Earphones - Black' -> 'KZ ZS10 Pro Earphones'
        'Moondrop Aria 2 (New 2023 Version)'                   -> 'Moondrop Aria 2'
    """
    if not isinstance(title, str):
        return ""
    result = _YEAR_PREFIX_RE.sub("", title)
    # Parenthesised marketing goes first: once "New"/"2023" are stripped out of
    # "(New 2023 Version)" the parenthetical no longer looks like noise
    result = _PAREN_NOISE_RE.sub("", result)
    result = _TRAILING_VARIANT_RE.sub("", result)
    result = _MARKETPLACE_NOISE_RE.sub("", result)
    result = _HIFI_RE.sub("", result)
    return re.sub(r"\s{2,}", " ", result).strip()
