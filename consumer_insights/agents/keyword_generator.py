from __future__ import annotations

from typing import Any

from consumer_insights.agents.base import BaseAgent, validate_payload
from consumer_insights.errors import EmptyQueryError
from consumer_insights.models.analysis import ExtractedQuery, GeneratedKeyword, GeneratedKeywords
from consumer_insights.services import logger as log_service
from consumer_insights.services.prompt_store import render_prompt

MAX_GENERATED_KEYWORDS = 10

GENERATE_KEYWORDS_TOOL = {
    "name": "generate_keywords",
    "description": "기업과 제품 정보를 바탕으로 다양한 검색 키워드를 생성합니다.",
    "input_schema": {
        "type": "object",
        "properties": {
            "keywords": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "searchQuery": {
                            "type": "string",
                            "description": "Google Search에 사용될 완전한 검색 쿼리 (AND 조건 포함)",
                        },
                        "displayName": {
                            "type": "string",
                            "description": "사용자에게 표시될 간단한 이름",
                        },
                    },
                    "required": ["searchQuery", "displayName"],
                },
                "minItems": 5,
                "maxItems": MAX_GENERATED_KEYWORDS,
                "description": "생성된 키워드 배열 (5~10개)",
            }
        },
        "required": ["keywords"],
        "additionalProperties": False,
    },
}

GENERATE_SEARCH_QUERY_TOOL = {
    "name": "generate_search_query",
    "description": "자연어 입력을 분석하여 Google 검색에 최적화된 쿼리를 생성합니다.",
    "input_schema": {
        "type": "object",
        "properties": {
            "searchQuery": {
                "type": "string",
                "description": "AND/OR 조건이 포함된 완성된 검색 쿼리 문자열 (예: \"올리브영 AND 신제품 AND 후기\")",
            },
            "keywords": {
                "type": "array",
                "items": {"type": "string"},
                "description": "추출된 핵심 키워드 배열",
                "minItems": 1,
                "maxItems": 5,
            },
        },
        "required": ["searchQuery", "keywords"],
        "additionalProperties": False,
    },
}


class KeywordGenerator(BaseAgent):
    """Forced tool calls that turn company/product pairs or free text into queries."""

    name = "keyword_generator"
    max_tokens = 1024

    async def generate(self, company: str, product: str) -> list[GeneratedKeyword]:
        company, product = company.strip(), product.strip()
        if not company or not product:
            raise EmptyQueryError("기업명과 제품/서비스명을 모두 입력해주세요.")

        arguments = await self._complete_tool(
            render_prompt("keyword_generation.system"),
            render_prompt("keyword_generation.user", company=company, product=product),
            GENERATE_KEYWORDS_TOOL,
        )
        generated = validate_payload(GeneratedKeywords, arguments, caller=self.name)
        keywords = generated.keywords[:MAX_GENERATED_KEYWORDS]
        log_service.log_pipeline_step(
            "keyword_generation",
            "completed",
            company=company,
            product=product,
            count=len(keywords),
        )
        return keywords

    async def extract_search_query(self, text: str) -> dict[str, Any]:
        """Natural-language request to ``{searchQuery, keywords, originalQuery}``."""
        text = (text or "").strip()
        if not text:
            raise EmptyQueryError()

        arguments = await self._complete_tool(
            render_prompt("query_extraction.system"),
            text,
            GENERATE_SEARCH_QUERY_TOOL,
        )
        extracted = validate_payload(ExtractedQuery, arguments, caller=self.name)
        return {
            "searchQuery": extracted.search_query.strip(),
            "keywords": extracted.keywords[:5],
            "originalQuery": text,
        }
