from ingest.progress import IngestProgressTracker


def test_passes_map_onto_two_halves():
    emissions: list[int] = []
    tracker = IngestProgressTracker(emissions.append)

    tracker.update_discovery(0, 4)
    tracker.update_discovery(2, 4)
    tracker.update_discovery(4, 4)
    tracker.update_aggregation(0, 2)
    tracker.update_aggregation(1, 2)
    tracker.update_aggregation(2, 2)
    tracker.finalize()

    assert emissions == [0, 25, 50, 75, 100]


def test_only_increases_are_sent():
    emissions: list[int] = []
    tracker = IngestProgressTracker(emissions.append)

    tracker.update_discovery(3, 4)
    tracker.update_discovery(1, 4)
    tracker.update_discovery(3, 4)

    assert emissions == [37]


def test_empty_pass_counts_as_complete():
    emissions: list[int] = []
    tracker = IngestProgressTracker(emissions.append)

    tracker.update_discovery(0, 0)

    assert emissions == [50]


def test_finalize_forces_completion_once():
    emissions: list[int] = []
    tracker = IngestProgressTracker(emissions.append)

    tracker.update_discovery(1, 10)
    tracker.finalize()
    tracker.finalize()

    assert emissions == [5, 100]
    assert tracker.last_percent == 100


def test_tracker_without_consumer_still_tracks():
    tracker = IngestProgressTracker(None)

    tracker.update_aggregation(1, 2)

    assert tracker.last_percent == 75
