from __future__ import annotations

import json

from conftest import air_data
from models.records import METRIC_FIELDS, BatchResult, Reading
from services.exposition import render_directory, render_metrics


def _batch(scores: dict[str, float]) -> BatchResult:
    readings = {
        name: Reading.model_validate_json(json.dumps(air_data(score=score)))
        for name, score in scores.items()
    }
    return BatchResult(readings=readings, sensors=list(scores))


def test_render_emits_eleven_lines_per_sensor_in_sorted_order() -> None:
    batch = _batch({"Living Room": 90.0, "Bedroom": 80.0, "Attic": 70.0})

    lines = render_metrics(batch).splitlines()

    assert len(lines) == 11 * 3
    sensors_in_order = [line.split('sensor="', 1)[1].split('"', 1)[0] for line in lines]
    assert sensors_in_order == ["Attic"] * 11 + ["Bedroom"] * 11 + ["Living Room"] * 11


def test_render_uses_fixed_metric_order_and_format() -> None:
    batch = _batch({"A": 80.0})

    text = render_metrics(batch)

    assert text == (
        'awair_score{sensor="A"} 80.000000\n'
        'awair_dew_point{sensor="A"} 11.200000\n'
        'awair_temp{sensor="A"} 21.500000\n'
        'awair_humid{sensor="A"} 52.100000\n'
        'awair_co2{sensor="A"} 612.000000\n'
        'awair_voc{sensor="A"} 143.000000\n'
        'awair_voc_baseline{sensor="A"} 36850.000000\n'
        'awair_voc_h2_raw{sensor="A"} 27.000000\n'
        'awair_voc_ethanol_raw{sensor="A"} 38.000000\n'
        'awair_pm25{sensor="A"} 3.000000\n'
        'awair_pm10_est{sensor="A"} 4.000000\n'
    )
    names = [line.split("{", 1)[0] for line in text.splitlines()]
    assert names == [f"awair_{name}" for name in METRIC_FIELDS]


def test_render_never_uses_scientific_notation() -> None:
    reading = Reading(score=1e-7, co2=1.5e12)
    batch = BatchResult(readings={"A": reading}, sensors=["A"])

    text = render_metrics(batch)

    assert 'awair_score{sensor="A"} 0.000000\n' in text
    assert 'awair_co2{sensor="A"} 1500000000000.000000\n' in text
    assert "e+" not in text and "e-" not in text


def test_render_sorts_by_code_point() -> None:
    batch = _batch({"b": 1.0, "B": 2.0, "a": 3.0, "Ä": 4.0})

    lines = render_metrics(batch).splitlines()[::11]

    assert [line.split('"')[1] for line in lines] == ["B", "a", "b", "Ä"]


def test_render_escapes_label_values() -> None:
    batch = _batch({'Kid\'s "Den"\\': 1.0})

    first = render_metrics(batch).splitlines()[0]

    assert first == 'awair_score{sensor="Kid\'s \\"Den\\"\\\\"} 1.000000'


def test_render_is_idempotent() -> None:
    batch = _batch({"B": 90.0, "A": 80.0})

    assert render_metrics(batch) == render_metrics(batch)


def test_render_empty_batch_is_empty() -> None:
    assert render_metrics(BatchResult()) == ""


def test_render_directory_round_trips_table() -> None:
    table = {"Bedroom": "192.168.53.1", "Living Room": "192.168.53.235"}

    directory = render_directory(table)

    assert json.loads(json.dumps(directory)) == table
