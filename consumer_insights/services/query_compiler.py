"""Search-expression compilation for the compose and guided flows."""
from __future__ import annotations

from dataclasses import dataclass

from consumer_insights.errors import EmptyQueryError


@dataclass(frozen=True)
class CompiledQuery:
    query: str
    display_name: str


def split_terms(text: str | None) -> list[str]:
    """Comma-separated terms, trimmed, empties dropped."""
    if not text:
        return []
    return [term.strip() for term in text.split(",") if term.strip()]


def _or_group(terms: list[str]) -> str:
    return " OR ".join(terms)


def compile_query(base: str | None, addendum: str | None) -> CompiledQuery:
    """Combine a saved base term with a free-text addendum.

    ``"X"`` + ``"a,b"`` gives ``X (a OR b)``; a single addendum term is a plain
    AND (``X a``). Without a base, several terms are OR-joined with no
    parentheses.
    """
    base = (base or "").strip()
    terms = split_terms(addendum)

    if base and terms:
        if len(terms) > 1:
            query = f"{base} ({_or_group(terms)})"
        else:
            query = f"{base} {terms[0]}"
        return CompiledQuery(query=query, display_name=f"{base} {', '.join(terms)}")

    if base:
        return CompiledQuery(query=base, display_name=base)

    if terms:
        query = _or_group(terms) if len(terms) > 1 else terms[0]
        return CompiledQuery(query=query, display_name=", ".join(terms))

    raise EmptyQueryError()


def compile_guided_query(company: str, product: str, labels: list[str]) -> CompiledQuery:
    """``(company AND product AND label)`` per selected info type, OR-joined.

    Callers handle the no-label case by generating keyword pairs instead.
    """
    company = company.strip()
    product = product.strip()
    labels = [label.strip() for label in labels if label and label.strip()]
    if not company or not product:
        raise EmptyQueryError("기업명과 제품/서비스명을 모두 입력해주세요.")
    if not labels:
        raise EmptyQueryError("정보 유형을 하나 이상 선택해주세요.")

    query = " OR ".join(f"({company} AND {product} AND {label})" for label in labels)
    return CompiledQuery(query=query, display_name=f"{company} {product} ({', '.join(labels)})")
