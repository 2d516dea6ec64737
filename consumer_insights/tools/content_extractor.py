from __future__ import annotations

import re

from bs4 import BeautifulSoup


def normalize_text(text: str) -> str:
    text = text.replace("\xa0", " ")
    text = re.sub(r"\r\n?", "\n", text)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def _extract_with_trafilatura(raw_html: str) -> str:
    import trafilatura

    extracted = trafilatura.extract(raw_html, output_format="txt")
    if not isinstance(extracted, str):
        return ""
    return normalize_text(extracted)


def _extract_with_soup(raw_html: str) -> str:
    soup = BeautifulSoup(raw_html, "html.parser")
    for tag in soup(["script", "style", "noscript", "nav", "header", "footer"]):
        tag.decompose()
    return normalize_text(soup.get_text("\n"))


def html_to_text(raw_html: str) -> str:
    """Main-content text for a crawled HTML page; empty string if nothing survives."""
    if not raw_html or not raw_html.strip():
        return ""
    text = _extract_with_trafilatura(raw_html)
    if text:
        return text
    return _extract_with_soup(raw_html)
