"""Telephony tone generator: DTMF and call-progress indicator tones as 16-bit PCM."""

__version__ = "0.2.0"