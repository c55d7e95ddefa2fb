"""Test metrics collector."""

import pytest
import time
import sys
import threading
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from apbatch.shared.metrics import MetricsCollector


def test_metrics_timer():
    """Test timer functionality."""
    metrics = MetricsCollector()

    metrics.start_timer('job')
    time.sleep(0.1)
    elapsed = metrics.stop_timer('job')

    assert elapsed >= 0.1
    assert len(metrics.get_metric('job_duration')) == 1


def test_metrics_stop_unknown_timer():
    """Stopping a timer that was never started raises KeyError."""
    metrics = MetricsCollector()

    with pytest.raises(KeyError):
        metrics.stop_timer('never')


def test_metrics_counter():
    """Test counter functionality."""
    metrics = MetricsCollector()

    metrics.increment_counter('jobs_completed')
    metrics.increment_counter('jobs_completed')
    metrics.increment_counter('jobs_completed', amount=3)

    assert metrics.get_counter('jobs_completed') == 5
    assert metrics.get_counter('jobs_failed') == 0


def test_metrics_summary():
    """Test summary generation."""
    metrics = MetricsCollector()

    metrics.record_metric('job_duration', 3.0)
    metrics.record_metric('job_duration', 1.0)
    metrics.record_metric('job_duration', 2.0)
    metrics.increment_counter('jobs_completed', 3)

    summary = metrics.get_summary()

    assert summary['counters'] == {'jobs_completed': 3}
    assert summary['metrics']['job_duration']['count'] == 3
    assert summary['metrics']['job_duration']['avg'] == 2.0
    assert summary['metrics']['job_duration']['min'] == 1.0
    assert summary['metrics']['job_duration']['max'] == 3.0
    assert summary['total_elapsed'] >= 0


def test_metrics_summary_non_numeric():
    """Non-numeric series are reported by count and values."""
    metrics = MetricsCollector()
    metrics.record_metric('template', 'Towsey.Acoustic.yml')

    summary = metrics.get_summary()

    assert summary['metrics']['template'] == {'count': 1, 'values': ['Towsey.Acoustic.yml']}


def test_format_summary_lines():
    """Formatted summary lists counters and timings."""
    metrics = MetricsCollector()
    metrics.increment_counter('jobs_completed', 2)
    metrics.record_metric('job_duration', 0.5)

    lines = metrics.format_summary()

    assert lines[0].startswith('Total elapsed:')
    assert '  jobs_completed: 2' in lines
    assert any(line.startswith('  job_duration: count=1') for line in lines)


def test_counters_are_thread_safe():
    """Concurrent increments are not lost."""
    metrics = MetricsCollector()

    def work():
        for _ in range(1000):
            metrics.increment_counter('n')

    threads = [threading.Thread(target=work) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert metrics.get_counter('n') == 4000
