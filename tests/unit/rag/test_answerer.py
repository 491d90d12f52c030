"""End-to-end tests for question answering."""

from __future__ import annotations

import asyncio

import pytest

from docent.errors import InputError
from docent.rag.answerer import FALLBACK_ANSWER, Answerer
from docent.rag.correction import NO_CONTEXT, SelfCorrector

QUESTION = "cats purr when they are happy"
CATS = "Cats purr when they are happy."


def _answer(answerer, question=QUESTION, user_id="alice"):
    return asyncio.run(answerer.answer(question, user_id))


@pytest.fixture
def full_answerer(retriever, embedder, fakes):
    generator = fakes.Generator(rewrite="dogs")

    def _build(**kwargs):
        gen = kwargs.pop("generator", generator)
        return Answerer(
            retriever,
            embedder,
            generator=gen,
            corrector=SelfCorrector(retriever, gen),
            reranker=fakes.Reranker(),
            **kwargs,
        )

    return _build


def test_answer_from_best_chunk(full_answerer, library):
    result = _answer(full_answerer(faithfulness_top_k=1))
    assert result.answer == CATS
    assert result.sources[0].chunk.document_id == library["cats.txt"]
    assert result.sources[0].rerank_score == pytest.approx(1.0)
    assert result.faithfulness == 100
    assert result.self_correction.needs_correction is False


def test_sources_only_from_asking_user(full_answerer, library):
    result = _answer(full_answerer(), "secret lab")
    assert library["secret.txt"] not in {s.chunk.document_id for s in result.sources}


def test_rerank_top_k_limits_sources(full_answerer, library):
    assert len(_answer(full_answerer(rerank_top_k=1)).sources) == 1


def test_no_generator_returns_fallback(retriever, embedder, library):
    result = _answer(Answerer(retriever, embedder))
    assert result.answer == FALLBACK_ANSWER
    assert result.faithfulness == 0
    assert result.faithfulness_detail == []
    assert result.sources


def test_generator_failure_returns_fallback(full_answerer, library, fakes):
    result = _answer(full_answerer(generator=fakes.Generator(fail_generate=True)))
    assert result.answer == FALLBACK_ANSWER
    assert result.faithfulness == 0


def test_correction_disabled_records_assessment(retriever, embedder, library, fakes):
    answerer = Answerer(retriever, embedder, generator=fakes.Generator())
    result = _answer(answerer, "quantum chromodynamics")
    assert result.self_correction.needs_correction is True
    assert result.self_correction.retrieval_used == "original"
    assert result.self_correction.note == "self-correction disabled"


def test_user_without_documents(full_answerer, library):
    result = _answer(full_answerer(), user_id="mallory")
    assert result.sources == []
    assert result.self_correction.reason == NO_CONTEXT
    assert result.faithfulness == 0


@pytest.mark.parametrize("question, user_id", [("", "alice"), ("   ", "alice"), ("q", ""), ("q", " ")])
def test_missing_question_or_user_is_input_error(full_answerer, question, user_id):
    with pytest.raises(InputError):
        _answer(full_answerer(), question, user_id)


def test_to_dict_shape(full_answerer, library):
    data = _answer(full_answerer()).to_dict()
    assert set(data) == {"answer", "sources", "faithfulness", "faithfulnessDetail", "selfCorrection"}
    source = data["sources"][0]
    assert source["fileName"] == "cats.txt"
    assert source["chunkType"] == "paragraph"
    assert {"charStart", "charEnd", "chunkIndex", "rerankScore"} <= set(source)
