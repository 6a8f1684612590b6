"""
Threaded streaming front end for the breathing pipeline.

Audio sources usually deliver chunks from their own callback thread. The
monitor queues those chunks and processes them on a single worker thread so
the pipeline's streaming state is only ever touched sequentially, then
dispatches state, rate and event callbacks from that worker.
"""

import queue
import threading
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from processors.signal_utils import ArrayLike, as_signal
from processors.breathing.pipeline import BreathingPipeline, PipelineOutput
from processors.breathing.classifier import BreathingState
from processors.breathing.events import BreathingEvent, BreathingRateMeasurement


@dataclass
class MonitorConfig:
    """
    Configuration for the streaming monitor.

    Attributes:
        max_queue_size: Pending chunks allowed before new chunks are dropped
        reset_on_start: Clear pipeline histories every time monitoring starts
        poll_interval: Worker wake-up interval in seconds while idle
    """
    max_queue_size: int = 64
    reset_on_start: bool = True
    poll_interval: float = 0.1


class BreathingMonitor:
    """
    Serializes chunk processing onto one worker thread.

    Callbacks run synchronously on the worker; receivers that update a UI or
    write to disk are responsible for their own thread hand-off.
    """

    def __init__(self, pipeline: Optional[BreathingPipeline] = None,
                 config: Optional[MonitorConfig] = None,
                 on_state: Optional[Callable[[BreathingState], None]] = None,
                 on_rate: Optional[Callable[[BreathingRateMeasurement], None]] = None,
                 on_event: Optional[Callable[[BreathingEvent], None]] = None):
        """
        Initialize the monitor.

        Args:
            pipeline: Pipeline to drive (a default one is created if None)
            config: Monitor configuration (uses default if None)
            on_state: Called with the breathing state of every chunk
            on_rate: Called with every rate measurement
            on_event: Called with every breathing event
        """
        self.pipeline = pipeline or BreathingPipeline()
        self.config = config or MonitorConfig()

        self.on_state = on_state
        self.on_rate = on_rate
        self.on_event = on_event

        self.chunk_queue = queue.Queue(maxsize=self.config.max_queue_size)
        self.worker_thread: Optional[threading.Thread] = None
        self.is_running = False
        self.dropped_chunks = 0
        # Guards is_running, worker_thread and queue puts
        self._lock = threading.Lock()

    def start(self) -> None:
        """
        Start the worker thread, optionally resetting pipeline history.

        If a previous worker is still draining its queue after `stop`, this
        waits for it so only one thread ever touches the pipeline.
        """
        with self._lock:
            if self.is_running:
                return

            if self.worker_thread is not None and self.worker_thread.is_alive():
                logging.info("Waiting for previous breathing worker to finish")
                self.worker_thread.join()

            if self.config.reset_on_start:
                self.pipeline.reset()

            self.is_running = True
            self.worker_thread = threading.Thread(target=self._process_chunks, daemon=True)
            self.worker_thread.start()

        logging.info(f"Breathing monitor started (reset_on_start={self.config.reset_on_start})")

    def stop(self, timeout: Optional[float] = 2.0) -> None:
        """
        Stop accepting chunks and wait for the worker to finish.

        Chunks already queued are still processed before the worker exits.
        A worker still busy after `timeout` is kept so `start` can wait for it.

        Args:
            timeout: Seconds to wait for the worker thread
        """
        with self._lock:
            if not self.is_running:
                return
            self.is_running = False
            worker = self.worker_thread

        if worker is not None:
            worker.join(timeout)
            if worker.is_alive():
                logging.warning(f"Breathing worker still draining {self.chunk_queue.qsize()} chunks")
            else:
                with self._lock:
                    if self.worker_thread is worker:
                        self.worker_thread = None

        logging.info(f"Breathing monitor stopped ({self.dropped_chunks} chunks dropped)")

    def submit(self, samples: ArrayLike, timestamp: Optional[float] = None) -> bool:
        """
        Queue a chunk for processing.

        Args:
            samples: Mono audio chunk
            timestamp: Chunk time in seconds (assigned at processing if None)

        Returns:
            True if the chunk was queued, False if dropped
        """
        # Copy so the producer can reuse its buffer
        chunk = as_signal(samples).copy()

        with self._lock:
            if not self.is_running:
                logging.warning("Chunk submitted while monitor is stopped")
                return False

            try:
                self.chunk_queue.put_nowait((chunk, timestamp))
                return True
            except queue.Full:
                self.dropped_chunks += 1
                logging.warning(f"Processing queue full, dropping chunk ({self.dropped_chunks} dropped)")
                return False

    def join(self) -> None:
        """Block until every queued chunk has been processed."""
        self.chunk_queue.join()

    def _process_chunks(self) -> None:
        """Worker loop: process queued chunks in arrival order."""
        while self.is_running or not self.chunk_queue.empty():
            try:
                samples, timestamp = self.chunk_queue.get(timeout=self.config.poll_interval)
            except queue.Empty:
                continue

            try:
                output = self.pipeline.process_chunk(samples, timestamp)
                self._dispatch(output)
            except Exception as e:
                logging.error(f"Breathing processing error: {e}")
            finally:
                self.chunk_queue.task_done()

    def _dispatch(self, output: PipelineOutput) -> None:
        # Active chunks only report a state once a feature window was classified
        if output.features_ready or not output.active:
            self._notify(self.on_state, output.state)

        if output.measurement is not None:
            self._notify(self.on_rate, output.measurement)

        for event in output.events:
            self._notify(self.on_event, event)

    def _notify(self, callback: Optional[Callable], value) -> None:
        if callback is None:
            return
        try:
            callback(value)
        except Exception as e:
            logging.error(f"Breathing callback error: {e}")
