"""
Speech-to-text caption extraction with word-level timestamps.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Iterable, Optional

from openai import AsyncOpenAI
from pydub import AudioSegment

from .errors import TranscriptionError
from .io_ffmpeg import ensure_dir
from .models import CaptionToken

logger = logging.getLogger("newsreel")


def caption_output_path(wav_path: str, out_dir: str) -> Path:
    """Captions for <dir>/<name>.wav live at <out_dir>/<name>.json."""
    return Path(out_dir) / (Path(wav_path).stem + ".json")


def _field(word: Any, name: str, default=None):
    if isinstance(word, dict):
        return word.get(name, default)
    return getattr(word, name, default)


def tokens_from_words(words: Iterable[Any], audio_ms: int) -> list[CaptionToken]:
    """Normalize raw (word, start, end[, probability]) items into ordered tokens.

    Start offsets are forced non-decreasing and every end is clamped into
    [start, audio_ms], so the sequence never runs past the audio.
    """
    tokens: list[CaptionToken] = []
    last_from = 0
    for w in words:
        text = str(_field(w, "word", "") or "").strip()
        if not text:
            continue
        start = float(_field(w, "start", 0.0) or 0.0)
        end = float(_field(w, "end", start) or start)
        from_ms = min(max(int(round(start * 1000)), last_from), audio_ms)
        to_ms = min(max(int(round(end * 1000)), from_ms), audio_ms)
        prob = _field(w, "probability")
        tokens.append(
            CaptionToken(
                text=text,
                from_ms=from_ms,
                to_ms=to_ms,
                confidence=float(prob) if prob is not None else None,
            )
        )
        last_from = from_ms
    return tokens


def _words_local_faster_whisper(wav_path: str, local_model: str, language: str) -> list[Any]:
    try:
        from faster_whisper import WhisperModel
    except ImportError as e:
        raise RuntimeError(
            "faster-whisper is not installed. Install with: pip install faster-whisper"
        ) from e

    logger.info(f"Transcribing locally with faster-whisper ({local_model}, language: {language}) …")
    model = WhisperModel(local_model, device="cpu", compute_type="int8")
    segments_iter, _info = model.transcribe(
        wav_path,
        language=language,
        beam_size=5,
        word_timestamps=True,
        vad_filter=False,
    )
    words: list[Any] = []
    for seg in segments_iter:
        words.extend(seg.words or [])
    return words


async def _words_whisper_api(
    client: AsyncOpenAI, wav_path: str, model: str, language: str
) -> list[Any]:
    if client is None:
        raise RuntimeError("OpenAI client is not initialized (missing OPENAI_API_KEY)")

    logger.info(f"Transcribing with {model} (language: {language}) …")
    with open(wav_path, "rb") as f:
        resp = await client.audio.transcriptions.create(
            model=model,
            file=f,
            language=language,
            response_format="verbose_json",
            timestamp_granularities=["word"],
        )
    words = getattr(resp, "words", None)
    if words is None and isinstance(resp, dict):
        words = resp.get("words")
    return list(words or [])


def write_captions(tokens: list[CaptionToken], path: str) -> Path:
    out = Path(path)
    ensure_dir(out.parent)
    with open(out, "w", encoding="utf-8") as f:
        json.dump([t.to_dict() for t in tokens], f, ensure_ascii=False, indent=2)
    return out


def read_captions(path: str) -> list[CaptionToken]:
    with open(path, encoding="utf-8") as f:
        return [CaptionToken.from_dict(d) for d in json.load(f)]


async def extract_captions(
    wav_path: str,
    out_dir: str,
    *,
    backend: str = "local",
    model: str = "base",
    language: str = "pt",
    client: Optional[AsyncOpenAI] = None,
) -> list[CaptionToken]:
    """Transcribe a 16 kHz WAV into word tokens and persist them as JSON."""
    audio_ms = len(AudioSegment.from_wav(wav_path))

    if backend == "openai":
        words = await _words_whisper_api(client, wav_path, model, language)
    elif backend == "local":
        words = await asyncio.to_thread(_words_local_faster_whisper, wav_path, model, language)
    else:
        raise ValueError(f"Unknown STT backend: {backend}")

    tokens = tokens_from_words(words, audio_ms)
    if not tokens:
        raise TranscriptionError(f"Transcription returned no words for {wav_path}")

    out_path = write_captions(tokens, caption_output_path(wav_path, out_dir))
    logger.info(f"Saved {len(tokens)} caption tokens -> {out_path}")
    return tokens
