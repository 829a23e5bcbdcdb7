# tests/unit/test_types.py
"""针对核心数据类型不变量的单元测试。"""

import pytest
from pydantic import ValidationError

from locale_sync.core.types import (
    CycleCheck,
    TranslationError,
    TranslationRequest,
    TranslationResult,
    Translations,
    WorkerError,
    WorkerResult,
    WorkerStage,
)


def test_stages_have_total_order_and_texts() -> None:
    stages = list(WorkerStage)
    assert [s.order for s in stages] == list(range(len(stages)))
    assert WorkerStage.TRANSLATING_FRONTEND.text == "Translating frontend"
    assert WorkerStage.IDLE.text == "Idle"


def test_worker_result_only_advances_forward() -> None:
    result = WorkerResult()
    result.advance(WorkerStage.CHECK_SERVERS_AND_FILES)
    result.advance(WorkerStage.TRANSLATING_BACKEND)

    with pytest.raises(ValueError, match="非法的阶段回退"):
        result.advance(WorkerStage.TRANSLATING_FRONTEND)
    with pytest.raises(ValueError):
        result.advance(WorkerStage.TRANSLATING_BACKEND)

    result.advance(WorkerStage.IDLE)
    assert result.last_status is WorkerStage.IDLE


def test_record_error_defaults_to_current_stage() -> None:
    result = WorkerResult()
    result.advance(WorkerStage.TRANSLATING_FRONTEND)

    error = result.record_error("写入失败")
    explicit = result.record_error("其他", WorkerStage.CHECK_SERVERS_AND_FILES)

    assert error.stage_at_failure is WorkerStage.TRANSLATING_FRONTEND
    assert explicit.stage_at_failure is WorkerStage.CHECK_SERVERS_AND_FILES
    assert result.errors == [error, explicit]


def test_successful_count_cannot_exceed_request_total() -> None:
    translations = Translations(
        requests=[TranslationRequest(language_code="de", to_add=1, to_update=1)]
    )
    translations.add_result(TranslationResult(language_code="de", successful_count=2))

    with pytest.raises(ValueError, match="超过了请求总数"):
        translations.add_result(TranslationResult(language_code="de", successful_count=3))
    with pytest.raises(ValueError, match="没有对应的翻译请求"):
        translations.add_result(TranslationResult(language_code="fr"))


def test_negative_successful_count_is_rejected() -> None:
    with pytest.raises(ValidationError):
        TranslationResult(language_code="de", successful_count=-1)


@pytest.mark.parametrize(
    "model, field, value",
    [
        (TranslationError(target_language="de", error_message="x", original_text="y"), "error_message", "z"),
        (WorkerError(message="m", stage_at_failure=WorkerStage.IDLE), "message", "n"),
        (CycleCheck(), "settings_loaded", True),
    ],
)
def test_log_entries_are_immutable(model: object, field: str, value: object) -> None:
    with pytest.raises(ValidationError):
        setattr(model, field, value)


def test_worker_result_json_roundtrip_preserves_nested_records() -> None:
    result = WorkerResult()
    result.advance(WorkerStage.TRANSLATING_BACKEND)
    result.backend.requests.append(TranslationRequest(language_code="de", to_add=2))
    result.backend.add_result(TranslationResult(language_code="de", successful_count=2))
    result.record_error("boom")

    restored = WorkerResult.model_validate(result.model_dump(mode="json"))

    assert restored == result
