"""
Newsreel - narrated short videos from news articles.

A sequential pipeline for:
- Writing a narration script with a language model
- Synthesizing speech with OpenAI TTS
- Transcoding and transcribing narration into word-level captions
- Planning scenes and matching them against Pexels stock footage
- Cropping and concatenating footage to the narration length
- Rendering the final captioned clip and recording it in storage
"""

__version__ = "0.1.0"
