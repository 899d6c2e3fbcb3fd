import json

import pytest
from unittest.mock import MagicMock

from app.helpers.parsing import first_json_object, parse_model_output
from app.models.rerank import LLMRerankResponse
from app.models.schemas import SearchResultItem
from app.services.llm_reranker import (
    RERANK_MAX_CONTENT_CHARS,
    TRUNCATION_MARKER,
    LLMReranker,
    build_rerank_prompt,
)

HCL_CURRENT = "Senior Engineer at HCL Technologies (2023-Present). Selenium, Python."
HCL_PAST = "Worked at HCL 2020-2022, currently at Infosys as Lead Engineer."


def candidate(file_name, score, content="resume text"):
    return SearchResultItem(
        file_name=file_name,
        email=f"{file_name}@example.com",
        phone_number="+91 90000 00000",
        snippet=content[:200],
        score=score,
        match_type="hybrid",
        full_content=content,
    )


def judgment(file_name, score, matches, company=None):
    match = {
        "fileName": file_name,
        "relevanceScore": score,
        "matchesCriteria": matches,
        "reasoning": f"reasoning for {file_name}",
    }
    if company:
        match["extractedInfo"] = {"currentCompany": company, "skills": ["Selenium"]}
    return match


def model_reply(matches, summary="done"):
    return json.dumps({"matches": matches, "summary": summary})


@pytest.fixture
def hcl_candidates():
    return [candidate("hcl_now.pdf", 0.61, HCL_CURRENT), candidate("hcl_before.pdf", 0.66, HCL_PAST)]


class TestParsing:
    """JSON extraction from free-form model output"""

    def test_fenced_block(self):
        text = "Here you go:\n```json\n" + model_reply([]) + "\n```\nThanks"
        assert parse_model_output(text, LLMRerankResponse).summary == "done"

    def test_object_embedded_in_prose(self):
        text = "Sure! " + model_reply([judgment("a.pdf", 0.9, True)]) + " Let me know {if} needed."
        parsed = parse_model_output(text, LLMRerankResponse)
        assert parsed.matches[0].file_name == "a.pdf"

    def test_raw_json(self):
        assert parse_model_output(model_reply([], "raw"), LLMRerankResponse).summary == "raw"

    def test_invalid_fence_falls_back_to_embedded_object(self):
        text = "```\nnot json\n```\n" + model_reply([], "second")
        assert parse_model_output(text, LLMRerankResponse).summary == "second"

    def test_schema_violation_is_rejected(self):
        bad = json.dumps({"matches": [judgment("a.pdf", 1.7, True)], "summary": "x"})
        with pytest.raises(ValueError):
            parse_model_output(bad, LLMRerankResponse)

    def test_non_json_is_rejected(self):
        with pytest.raises(ValueError):
            parse_model_output("I could not evaluate these resumes.", LLMRerankResponse)

    def test_first_json_object_skips_unbalanced_braces(self):
        assert first_json_object('{oops {"a": 1} tail') == '{"a": 1}'
        assert first_json_object("no braces") is None


class TestPrompt:

    def test_long_content_is_truncated(self):
        long_resume = candidate("long.pdf", 0.5, "z" * (RERANK_MAX_CONTENT_CHARS + 500))
        prompt = build_rerank_prompt("java", [long_resume])
        assert "z" * RERANK_MAX_CONTENT_CHARS + TRUNCATION_MARKER in prompt
        assert "z" * (RERANK_MAX_CONTENT_CHARS + 1) not in prompt

    def test_prompt_lists_every_candidate(self, hcl_candidates):
        prompt = build_rerank_prompt("currently with HCL", hcl_candidates)
        assert "currently with HCL" in prompt
        assert "### Resume 1: hcl_now.pdf" in prompt
        assert "### Resume 2: hcl_before.pdf" in prompt
        assert HCL_PAST in prompt


class TestLLMReranker:

    @pytest.mark.asyncio
    async def test_empty_candidates_skip_the_model(self):
        generate = MagicMock()
        outcome = await LLMReranker(generate).rerank_and_filter("java", [], "t1")

        generate.assert_not_called()
        assert outcome.results == []
        assert outcome.llm_analysis.status == "empty"

    @pytest.mark.asyncio
    async def test_currently_with_hcl_keeps_only_current_employee(self, hcl_candidates):
        reply = model_reply([
            judgment("hcl_now.pdf", 0.95, True, company="HCL Technologies"),
            judgment("hcl_before.pdf", 0.35, False, company="Infosys"),
        ])
        generate = MagicMock(return_value=reply)

        outcome = await LLMReranker(generate).rerank_and_filter("currently with HCL", hcl_candidates, "t2")

        generate.assert_called_once()
        assert [r.file_name for r in outcome.results] == ["hcl_now.pdf"]
        kept = outcome.results[0]
        assert kept.score == pytest.approx(0.95)
        assert kept.match_type == "llm-reranked"
        assert kept.extracted_info.current_company == "HCL Technologies"
        assert kept.email == "hcl_now.pdf@example.com"
        assert outcome.llm_analysis.status == "ok"
        assert {m.file_name: m.matches_criteria for m in outcome.llm_analysis.matches} == {
            "hcl_now.pdf": True,
            "hcl_before.pdf": False,
        }

    @pytest.mark.asyncio
    async def test_output_is_subset_of_input(self):
        candidates = [candidate(f"c{i}.pdf", 0.5) for i in range(4)]
        reply = model_reply([
            judgment("c0.pdf", 0.4, True),
            judgment("c2.pdf", 0.9, True),
            judgment("ghost.pdf", 0.99, True),
            judgment("c2.pdf", 0.1, True),
            judgment("c3.pdf", 0.8, False),
        ])

        outcome = await LLMReranker(MagicMock(return_value=reply)).rerank_and_filter("q", candidates, "t3")

        names = [r.file_name for r in outcome.results]
        assert names == ["c2.pdf", "c0.pdf"]
        assert len(set(names)) == len(names)
        assert set(names) <= {c.file_name for c in candidates}

    @pytest.mark.asyncio
    async def test_unparseable_reply_passes_candidates_through(self, hcl_candidates):
        generate = MagicMock(return_value="Sorry, I can't help with that.")

        outcome = await LLMReranker(generate).rerank_and_filter("currently with HCL", hcl_candidates, "t4")

        assert outcome.results == hcl_candidates
        assert [r.score for r in outcome.results] == [0.61, 0.66]
        assert outcome.llm_analysis.status == "parse_failed"
        assert "Failed to parse" in outcome.llm_analysis.summary
        assert all(m.matches_criteria for m in outcome.llm_analysis.matches)

    @pytest.mark.asyncio
    async def test_model_error_passes_candidates_through(self, hcl_candidates):
        generate = MagicMock(side_effect=TimeoutError("read timed out"))

        outcome = await LLMReranker(generate).rerank_and_filter("q", hcl_candidates, "t5")

        generate.assert_called_once()
        assert outcome.results == hcl_candidates
        assert outcome.llm_analysis.status == "error"
        assert "read timed out" in outcome.llm_analysis.summary

    @pytest.mark.asyncio
    async def test_out_of_range_score_degrades_to_pass_through(self, hcl_candidates):
        reply = model_reply([judgment("hcl_now.pdf", 1.4, True)])
        outcome = await LLMReranker(MagicMock(return_value=reply)).rerank_and_filter("q", hcl_candidates, "t6")

        assert outcome.results == hcl_candidates
        assert outcome.llm_analysis.status == "parse_failed"
