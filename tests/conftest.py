import os
from typing import Any

from hypothesis import HealthCheck, settings

settings.register_profile(
    "ci",
    max_examples=200,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)
settings.register_profile("dev", max_examples=50, deadline=None)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "dev"))

# Monkeypatch coverage to bypass teardown crash in act/docker
if os.getenv("COVERAGE_PROCESS_START"):
    import coverage

    coverage.process_startup()

    import coverage.collector

    def safe_stop(self: Any) -> None:
        if self in getattr(self, "_collectors", []):
            self._collectors.remove(self)

    coverage.collector.Collector.stop = safe_stop
