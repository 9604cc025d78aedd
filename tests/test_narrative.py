from conftest import FakeLLM
from narrative import AdventureNarrator
from prompts import STAGE_ONE_FALLBACK, get_stage_prompt


def test_stage_prompt_mentions_hearts_and_choices():
    prompt = get_stage_prompt("A cold start.", hearts=1)

    assert "1 health hearts" in prompt
    assert "left=forest, right=rocky plains" in prompt
    assert 'Original text: "A cold start."' in prompt


def test_stage_one_document():
    llm = FakeLLM(narrative="Mist curls around the wolf.")
    narrator = AdventureNarrator(client=llm, model="narrator-model", max_tokens=128)

    stage = narrator.stage_one(hearts=3)

    assert stage["id"] == "stage1"
    assert stage["prompt"] == "Mist curls around the wolf."
    assert stage["assets"] == {"wolf": "/wolf.png", "hearts": 3}
    assert set(stage["choices"]) == {"left", "right"}
    assert llm.calls[0]["model"] == "narrator-model"
    assert llm.calls[0]["max_tokens"] == 128


def test_stage_one_falls_back_when_llm_fails():
    narrator = AdventureNarrator(client=FakeLLM(error=TimeoutError("slow")))

    assert narrator.stage_one() == {
        "error": "Failed to generate adventure prompt",
        "fallback": STAGE_ONE_FALLBACK,
    }
