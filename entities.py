"""
HTML entity decoding.

Named entities are replaced by literal substring substitution from a fixed
table, then decimal (&#NNN;) and hexadecimal (&#xHHHH;) references are
converted. Numeric references that do not map to a valid code point are left
untouched.
"""
import re

ENTITY_MAP = {
    '&amp;': '&',
    '&lt;': '<',
    '&gt;': '>',
    '&quot;': '"',
    '&#39;': "'",
    '&apos;': "'",
    '&nbsp;': ' ',
    '&mdash;': '—',
    '&ndash;': '–',
    '&hellip;': '…',
    '&copy;': '©',
    '&reg;': '®',
    '&trade;': '™',
    '&euro;': '€',
    '&pound;': '£',
    '&cent;': '¢',
    '&yen;': '¥',
    '&sect;': '§',
    '&para;': '¶',
    # Quotes
    '&lsquo;': '‘',
    '&rsquo;': '’',
    '&ldquo;': '“',
    '&rdquo;': '”',
    '&sbquo;': '‚',
    '&bdquo;': '„',
    # Symbols
    '&bull;': '•',
    '&prime;': '′',
    '&Prime;': '″',
    '&times;': '×',
    '&divide;': '÷',
    '&plusmn;': '±',
    '&micro;': 'µ',
    '&middot;': '·',
    # Arrows
    '&rarr;': '→',
    '&larr;': '←',
    '&uarr;': '↑',
    '&darr;': '↓',
    '&harr;': '↔',
    # Math
    '&le;': '≤',
    '&ge;': '≥',
    '&ne;': '≠',
    '&approx;': '≈',
    # Spacing
    '&ensp;': ' ',
    '&emsp;': ' ',
    '&thinsp;': ' ',
}

_DECIMAL_REF = re.compile(r'&#(\d+);')
_HEX_REF = re.compile(r'&#[xX]([0-9a-fA-F]+);')

_MAX_CODEPOINT = 0x10FFFF


def _codepoint_to_char(match: 're.Match', base: int) -> str:
    try:
        codepoint = int(match.group(1), base)
    except ValueError:
        return match.group(0)
    # NUL, surrogates and out-of-range values stay as written
    if codepoint == 0 or codepoint > _MAX_CODEPOINT or 0xD800 <= codepoint <= 0xDFFF:
        return match.group(0)
    return chr(codepoint)


def decode_entities(text: str) -> str:
    """
    Decode named and numeric HTML entities into literal characters.

    Never raises; malformed numeric references pass through unchanged.
    """
    if not text:
        return text or ''

    result = text
    for entity, char in ENTITY_MAP.items():
        if entity in result:
            result = result.replace(entity, char)

    result = _DECIMAL_REF.sub(lambda m: _codepoint_to_char(m, 10), result)
    result = _HEX_REF.sub(lambda m: _codepoint_to_char(m, 16), result)
    return result
