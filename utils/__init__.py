"""
Utility modules for breathing monitoring.

- Fixed-capacity ring buffers
- Device command packets
- Replay visualization
"""
