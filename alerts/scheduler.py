"""Background scheduler for periodic evaluation passes."""
import logging
import threading
import schedule
import time

logger = logging.getLogger("repairwatch.scheduler")


class EvaluationScheduler:
    def __init__(self, engine, interval_seconds=900):
        self.engine = engine
        self.interval = interval_seconds
        self._scheduler = schedule.Scheduler()
        self._thread = None
        self._running = False
        self._callbacks = []
        self._consecutive_failures = 0

    def on_pass(self, callback):
        """Register callback called with the PassResult after each pass."""
        self._callbacks.append(callback)

    def start(self):
        """Start background evaluation."""
        if self._running:
            return
        self._running = True

        self._scheduler.every(self.interval).seconds.do(self._evaluate_job)

        self._thread = threading.Thread(target=self._run_loop, daemon=True)
        self._thread.start()
        logger.info(f"Scheduler started (every {self.interval}s)")

    def stop(self):
        """Stop background evaluation."""
        self._running = False
        self._scheduler.clear()
        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None
        logger.info("Scheduler stopped")

    def run_forever(self):
        """Foreground variant of start(); returns on KeyboardInterrupt."""
        self.start()
        try:
            while self._running:
                time.sleep(1)
        except KeyboardInterrupt:
            pass
        finally:
            self.stop()

    def _run_loop(self):
        # Do an initial pass immediately
        self._evaluate_job()
        while self._running:
            self._scheduler.run_pending()
            time.sleep(1)

    def _evaluate_job(self):
        result = self.engine.run_pass()
        if result.success:
            self._consecutive_failures = 0
        else:
            self._consecutive_failures += 1
            logger.error(f"Evaluation pass failed ({self._consecutive_failures} consecutive): "
                         f"{result.error or ', '.join(result.failed_rules)}")
            if self._consecutive_failures >= 5:
                logger.critical("5+ consecutive evaluation failures!")
        for cb in self._callbacks:
            try:
                cb(result)
            except Exception as e:
                logger.warning(f"Callback error: {e}")
        return result
