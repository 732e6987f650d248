from reviewer.app.llm.prompt_fragment import PromptFragment


def make_test_prompt(key: str) -> PromptFragment:
    return PromptFragment(
        family="TEST",
        version="0.0",
        key=key,
        text=f"TEST PROMPT FOR {key}",
    )
