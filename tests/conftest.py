import pytest


@pytest.fixture
def incident_records():
    """Small ticketing dataset with ids, dates, categories and metrics."""
    return [
        {"ticket_id": 1, "date": "2024-01-01", "priority": "high", "opened": 10, "resolved": 8},
        {"ticket_id": 2, "date": "2024-01-02", "priority": "low", "opened": 12, "resolved": 9},
        {"ticket_id": 3, "date": "2024-01-03", "priority": "high", "opened": 14, "resolved": 12},
        {"ticket_id": 4, "date": "2024-01-04", "priority": "low", "opened": 16, "resolved": 13},
        {"ticket_id": 5, "date": "2024-01-05", "priority": "high", "opened": 18, "resolved": 15},
        {"ticket_id": 6, "date": "2024-01-06", "priority": "high", "opened": 20, "resolved": 16},
    ]


@pytest.fixture
def resolved_records():
    return [
        {"resolved": 10, "date": "2024-01-01"},
        {"resolved": 20, "date": "2024-02-01"},
        {"resolved": 30, "date": "2024-03-01"},
    ]
