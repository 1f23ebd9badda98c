"""
Email text cleanup.

Handles:
1. HTML → plain text for cached email bodies
2. Noise removal (signatures, disclaimers, quoted replies) before text
   is placed into an LLM prompt
3. Length capping for prompt context
"""

import re
from bs4 import BeautifulSoup

# Longest body excerpt placed into a prompt (1 token ≈ 4 chars)
MAX_PROMPT_CHARS = 2000

SIGNATURE_PATTERNS = [
    r'thanks\s*(&|and)?\s*regards?.*$',
    r'best\s*regards?.*$',
    r'kind\s*regards?.*$',
    r'regards,?\s*$',
    r'sincerely.*$',
    r'cheers,?\s*$',
]

DISCLAIMER_PATTERNS = [
    r'this\s*(e-?mail|message)\s*(is\s*)?(intended|confidential).*',
    r'if\s*you\s*are\s*not\s*the\s*intended\s*recipient.*',
    r'unsubscribe.*',
]

REPLY_PATTERNS = [
    r'^on\s+.+wrote:.*$',
    r'^-{3,}.*original\s*message.*-{3,}$',
    r'^>+\s*.*$',
]

NOISE_PATTERNS = [
    r'\[image:.*?\]',
    r'\[cid:.*?\]',
    r'sent\s*from\s*(my\s*)?(iphone|android|mobile).*$',
    r'get\s*outlook\s*for.*$',
]


def html_to_text(raw_html: str) -> str:
    """
    Convert an HTML email body to plain text.

    Args:
        raw_html: Raw HTML string from the message payload

    Returns:
        Plain text with normalized whitespace
    """
    if not raw_html:
        return ""

    soup = BeautifulSoup(raw_html, "html.parser")

    for tag in soup(['script', 'style', 'head', 'meta', 'link']):
        tag.decompose()

    for br in soup.find_all('br'):
        br.replace_with('\n')
    for p in soup.find_all('p'):
        p.insert_after('\n')

    text = soup.get_text(separator=' ')

    text = re.sub(r'[ \t]+', ' ', text)
    text = re.sub(r'\n\s*\n', '\n\n', text)
    text = re.sub(r'\n{3,}', '\n\n', text)

    return text.strip()


def remove_noise(text: str) -> str:
    """
    Drop quoted replies, signatures, disclaimers and client footers.

    Everything after the first signature line is discarded.
    """
    if not text:
        return ""

    cleaned_lines = []

    for line in text.split('\n'):
        line_lower = line.lower().strip()

        if any(re.match(pattern, line_lower) for pattern in REPLY_PATTERNS):
            continue

        if any(re.match(pattern, line_lower) for pattern in SIGNATURE_PATTERNS):
            break

        if any(re.search(pattern, line_lower) for pattern in DISCLAIMER_PATTERNS):
            continue

        if any(re.search(pattern, line_lower) for pattern in NOISE_PATTERNS):
            continue

        cleaned_lines.append(line)

    result = '\n'.join(cleaned_lines)
    result = re.sub(r'\n{3,}', '\n\n', result)
    result = re.sub(r'[ \t]+', ' ', result)

    return result.strip()


def prompt_excerpt(text: str, max_chars: int = MAX_PROMPT_CHARS) -> str:
    """Noise-free, length-capped version of an email body for a prompt."""
    cleaned = remove_noise(text or "")
    if len(cleaned) <= max_chars:
        return cleaned
    return cleaned[:max_chars].rstrip() + "..."
