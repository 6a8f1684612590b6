"""
Offline replay of a breathing recording through the detection pipeline.

Streams a mono WAV file chunk by chunk, as the live audio source would, and
logs breathing states, rate measurements and events. Optionally writes a JSON
session summary and a plot.
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

import numpy as np
import soundfile as sf

from processors.breathing.classifier import BreathingState
from processors.breathing.events import BreathingSession
from processors.breathing.pipeline import BreathingPipeline, PipelineConfig, PipelineOutput

# Setup logging
logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(message)s")


def load_audio(path: str, sample_rate: float) -> np.ndarray:
    """
    Load a recording as mono float32 samples.

    Args:
        path: Audio file path
        sample_rate: Sample rate the pipeline expects

    Returns:
        Mono samples

    Raises:
        ValueError: If the file sample rate does not match
    """
    data, file_rate = sf.read(path, dtype='float32', always_2d=True)

    if file_rate != sample_rate:
        raise ValueError(f"Expected {sample_rate:.0f} Hz audio, got {file_rate} Hz")

    if data.shape[1] > 1:
        logging.info(f"Using first of {data.shape[1]} channels")

    return data[:, 0]


def replay(samples: np.ndarray, pipeline: BreathingPipeline, chunk_size: int,
           session: BreathingSession) -> List[PipelineOutput]:
    """
    Feed samples through the pipeline in fixed-size chunks.

    Args:
        samples: Mono audio samples
        pipeline: Pipeline to drive
        chunk_size: Samples per chunk
        session: Session collecting rates and events

    Returns:
        Pipeline outputs in processing order
    """
    outputs = []
    last_state = BreathingState.NONE
    sample_rate = pipeline.config.sample_rate

    for start in range(0, len(samples), chunk_size):
        timestamp = session.start_time + start / sample_rate
        output = pipeline.process_chunk(samples[start:start + chunk_size], timestamp)
        outputs.append(output)

        if output.state != last_state:
            logging.info(f"{timestamp - session.start_time:7.2f}s state: {output.state.value}")
            last_state = output.state

        if output.measurement is not None:
            session.add_rate_measurement(output.measurement)
        for event in output.events:
            session.add_event(event)

    session.end(session.start_time + len(samples) / sample_rate)
    return outputs


def main(argv: Optional[List[str]] = None) -> int:
    """Main function to replay a recording."""
    parser = argparse.ArgumentParser(description="Replay a recording through the breathing detector")
    parser.add_argument("wav", type=str, help="mono recording at the pipeline sample rate")
    parser.add_argument("--sample-rate", type=float, default=16000.0)
    parser.add_argument("--chunk-size", type=int, default=1024, help="samples per chunk (~64 ms at 16 kHz)")
    parser.add_argument("--json-out", type=str, default=None, help="write session summary as JSON")
    parser.add_argument("--plot", type=str, default=None, help="write replay plot to this image path")
    parser.add_argument("--debug", action="store_true", help="log per-chunk details")
    args = parser.parse_args(argv)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.chunk_size <= 0:
        logging.error("Chunk size must be positive")
        return 2

    try:
        samples = load_audio(args.wav, args.sample_rate)
    except (OSError, RuntimeError, ValueError) as e:
        logging.error(f"Cannot load {args.wav}: {e}")
        return 1

    pipeline = BreathingPipeline(PipelineConfig(sample_rate=args.sample_rate))
    session = BreathingSession(start_time=0.0)

    outputs = replay(samples, pipeline, args.chunk_size, session)

    logging.info(f"Processed {len(outputs)} chunks ({session.duration:.1f}s): "
                 f"average rate {session.average_rate:.1f} BPM, "
                 f"{session.apnea_count} apnea, {session.deep_breath_count} deep breath events")

    if args.json_out:
        with open(args.json_out, 'w') as f:
            json.dump(session.to_dict(), f, indent=2)
        logging.info(f"Session summary written to {args.json_out}")

    if args.plot:
        from utils.visualization_helper import VisualizationHelper
        VisualizationHelper().plot_session(outputs, args.plot)
        logging.info(f"Replay plot written to {args.plot}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
