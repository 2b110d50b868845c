"""Tests for Prometheus instrumentation."""

import pytest

from vibedev.config import EntityKind
from vibedev.errors import server_action
from vibedev.metrics import generate_metrics_output, sample_value
from vibedev.views import ViewCounter


class TestMetrics:
    """Tests for counters updated by the services."""

    @pytest.mark.asyncio
    async def test_view_outcomes_are_counted(self, alice, make_project, gateway):
        project = make_project(alice)
        recorded = {"kind": "project", "outcome": "recorded"}
        duplicate = {"kind": "project", "outcome": "duplicate"}
        before = (
            sample_value("views_recorded_total", recorded),
            sample_value("views_recorded_total", duplicate),
        )

        views = ViewCounter(gateway)
        await views.record_view(EntityKind.PROJECT, project.id, "s-1")
        await views.record_view(EntityKind.PROJECT, project.id, "s-1")

        assert sample_value("views_recorded_total", recorded) == before[0] + 1
        assert sample_value("views_recorded_total", duplicate) == before[1] + 1

    @pytest.mark.asyncio
    async def test_action_errors_are_counted(self):
        @server_action("metrics_probe")
        async def failing():
            raise KeyError("boom")

        labels = {"action": "metrics_probe", "kind": "unexpected"}
        before = sample_value("action_errors_total", labels)

        await failing()

        assert sample_value("action_errors_total", labels) == before + 1

    def test_unrecorded_sample_is_zero(self):
        assert sample_value("views_recorded_total", {"kind": "post", "outcome": "never"}) == 0.0

    def test_output_format(self):
        output = generate_metrics_output().decode("utf-8")

        assert "# TYPE views_recorded_total counter" in output
        assert "# TYPE store_operation_duration_seconds histogram" in output
