"""
Acoustic breathing detection components.

Streaming stages, in processing order:
- Signal conditioning (band-pass, AGC, envelope)
- Adaptive activity gating
- Log-mel feature extraction
- Rule-based state classification
- Breathing rate and event tracking
"""
