"""
Narration script generation with GPT.
"""

import logging

from openai import AsyncOpenAI

from .errors import PipelineError

logger = logging.getLogger("newsreel")

LANGUAGE_NAMES = {
    "pt": "Brazilian Portuguese",
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
}


def build_system_prompt(language: str) -> str:
    """System instruction for a spoken short-video narration."""
    lang = LANGUAGE_NAMES.get(language.lower(), language)
    return (
        f"Write in {lang}. You are a presenter who specializes in short viral videos. "
        "You will receive a topic and must write the text that will be spoken in the video. "
        "Be direct: no emojis, no bold, no markdown, no stage directions, no speaker labels. "
        "Be natural, as if you were talking to the audience. "
        "Return ONLY the words to be read aloud."
    )


async def generate_script(
    client: AsyncOpenAI,
    prompt: str,
    model: str = "gpt-4o-mini",
    language: str = "pt",
) -> str:
    """Turn a topic prompt into narration text."""
    if not prompt or not prompt.strip():
        raise ValueError("Topic prompt must be a non-empty string")

    logger.info(f"Writing narration script with {model} …")
    chat = await client.chat.completions.create(
        model=model,
        messages=[
            {"role": "system", "content": build_system_prompt(language)},
            {"role": "user", "content": prompt.strip()},
        ],
        temperature=0.7,
    )
    content = (chat.choices[0].message.content or "").strip()
    if not content:
        raise PipelineError("Model returned an empty narration script")

    logger.info(f"Narration script ready ({len(content)} characters)")
    return content
