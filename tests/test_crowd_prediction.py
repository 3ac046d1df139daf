"""
Tests for non-Schengen filtering and crowd analysis.
"""

from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from crowdcast.analytics import CrowdLevel, CrowdPredictor, analyze_flights, filter_non_schengen, is_schengen_icao
from crowdcast.analytics.crowd_prediction import crowd_level, day_window, estimate_passengers
from crowdcast.errors import UnauthorizedError


def _arrival(ident, origin_icao, scheduled, city='Somewhere'):
    return {
        'ident': ident,
        'operator': 'TAP',
        'origin': {'code_icao': origin_icao, 'city': city},
        'destination': {'code_icao': 'LPPT', 'city': 'Lisbon'},
        'scheduled_in': scheduled,
        'estimated_in': None,
    }


def _departure(ident, dest_icao, scheduled, city='Elsewhere'):
    return {
        'ident': ident,
        'operator': 'TAP',
        'origin': {'code_icao': 'LPPT', 'city': 'Lisbon'},
        'destination': {'code_icao': dest_icao, 'city': city},
        'scheduled_out': scheduled,
    }


@pytest.mark.parametrize('code, expected', [
    ('LPPT', True),
    ('EDDF', True),
    ('lfpg', True),
    ('KJFK', False),
    ('SBGR', False),
    ('OMDB', False),
    ('', False),
    (None, False),
])
def test_is_schengen_icao(code, expected):
    assert is_schengen_icao(code) is expected


class TestFilterNonSchengen:

    def test_arrivals_filtered_on_origin(self):
        flights = [
            _arrival('TAP202', 'KEWR', '2025-12-31T08:10:00Z', city='Newark'),
            _arrival('TAP1015', 'LEMD', '2025-12-31T08:30:00Z', city='Madrid'),
        ]

        result = filter_non_schengen(flights, 'arrival')

        assert result == [{
            'flightNumber': 'TAP202',
            'airline': 'TAP',
            'origin': 'Newark',
            'destination': None,
            'scheduledTime': '2025-12-31T08:10:00Z',
            'estimatedTime': None,
            'type': 'arrival',
        }]

    def test_departures_filtered_on_destination(self):
        flights = [
            _departure('TAP87', 'SBGR', '2025-12-31T10:00:00Z', city='Sao Paulo'),
            _departure('TAP500', 'LFPG', '2025-12-31T10:15:00Z', city='Paris'),
        ]

        result = filter_non_schengen(flights, 'departure')

        assert [f['flightNumber'] for f in result] == ['TAP87']
        assert result[0]['destination'] == 'Sao Paulo'
        assert result[0]['origin'] is None

    def test_skips_flights_without_location_code(self):
        flights = [
            {'ident': 'X1', 'origin': None},
            {'ident': 'X2', 'origin': {'city': 'Nowhere'}},
        ]
        assert filter_non_schengen(flights, 'arrival') == []

    def test_falls_back_to_plain_code(self):
        flights = [{'ident': 'X1', 'origin': {'code': 'OMDB'}, 'scheduled_on': '2025-12-31T01:00:00Z'}]

        result = filter_non_schengen(flights, 'arrival')

        assert result[0]['origin'] == 'OMDB'
        assert result[0]['scheduledTime'] == '2025-12-31T01:00:00Z'
        assert result[0]['airline'] == 'Unknown'

    def test_empty_input(self):
        assert filter_non_schengen([], 'arrival') == []
        assert filter_non_schengen(None, 'departure') == []

    def test_rejects_unknown_direction(self):
        with pytest.raises(ValueError):
            filter_non_schengen([], 'arrivals')


class TestAnalyzeFlights:

    def test_empty(self):
        result = analyze_flights([], [])

        assert result['totalFlights'] == 0
        assert result['peakHour'] == 'N/A'
        assert result['peakFlights'] == []
        assert result['flightsByHour'] == {}
        assert result['crowdLevel'] == 'low'
        assert result['hourlyCounts'] == [0] * 24

    def test_peak_hour(self):
        arrivals = filter_non_schengen([
            _arrival('A1', 'KJFK', '2025-12-31T08:05:00Z'),
            _arrival('A2', 'KJFK', '2025-12-31T08:45:00Z'),
            _arrival('A3', 'KJFK', '2025-12-31T14:00:00Z'),
        ], 'arrival')
        departures = filter_non_schengen([
            _departure('D1', 'SBGR', '2025-12-31T08:30:00Z'),
        ], 'departure')

        result = analyze_flights(arrivals, departures)

        assert result['totalFlights'] == 4
        assert result['peakHour'] == '08:00 - 09:00'
        assert [f['flightNumber'] for f in result['peakFlights']] == ['A1', 'A2', 'D1']
        assert result['peakFlights'][0]['time'] == '08:05'
        assert list(result['flightsByHour']) == ['8', '14']
        assert result['hourlyCounts'][8] == 3
        assert result['estimatedPassengers'] == 720

    def test_tie_goes_to_earliest_hour(self):
        arrivals = filter_non_schengen([
            _arrival('LATE', 'KJFK', '2025-12-31T20:00:00Z'),
            _arrival('EARLY', 'KJFK', '2025-12-31T06:00:00Z'),
        ], 'arrival')

        result = analyze_flights(arrivals, [])

        assert result['peakHour'] == '06:00 - 07:00'

    def test_untimed_flights_count_but_are_not_bucketed(self):
        arrivals = [{'flightNumber': 'X', 'scheduledTime': None, 'estimatedTime': None}]

        result = analyze_flights(arrivals, [])

        assert result['totalFlights'] == 1
        assert result['peakHour'] == 'N/A'

    def test_times_normalized_to_utc(self):
        arrivals = [{'flightNumber': 'X', 'scheduledTime': '2025-12-31T10:30:00+02:00'}]

        result = analyze_flights(arrivals, [])

        assert result['peakHour'] == '08:00 - 09:00'
        assert result['peakFlights'][0]['time'] == '08:30'

    def test_peak_flights_capped_at_ten(self):
        arrivals = [
            {'flightNumber': f'F{i}', 'scheduledTime': f'2025-12-31T09:{i:02d}:00Z'}
            for i in range(15)
        ]

        result = analyze_flights(arrivals, [])

        assert len(result['peakFlights']) == 10
        assert result['crowdLevel'] == 'medium'


@pytest.mark.parametrize('total, level', [
    (0, CrowdLevel.LOW),
    (9, CrowdLevel.LOW),
    (10, CrowdLevel.MEDIUM),
    (19, CrowdLevel.MEDIUM),
    (20, CrowdLevel.HIGH),
    (34, CrowdLevel.HIGH),
    (35, CrowdLevel.VERY_HIGH),
])
def test_crowd_level_thresholds(total, level):
    assert crowd_level(total) is level


def test_estimate_passengers():
    assert estimate_passengers(10) == 1800
    assert estimate_passengers(10, per_flight=100) == 1000


def test_day_window():
    start, end = day_window('2025-12-31')

    assert start == datetime(2025, 12, 31, tzinfo=timezone.utc)
    assert end == datetime(2025, 12, 31, 23, 59, 59, tzinfo=timezone.utc)


def test_day_window_rejects_malformed_date():
    with pytest.raises(ValueError):
        day_window('31/12/2025')


def test_predictor_combines_arrivals_and_departures():
    schedules = Mock()
    schedules.get_airport_flights.side_effect = lambda airport, direction, start, end: {
        'arrivals': [_arrival('A1', 'KJFK', '2025-12-31T08:05:00Z')],
        'departures': [
            _departure('D1', 'SBGR', '2025-12-31T09:00:00Z'),
            _departure('D2', 'LEMD', '2025-12-31T09:10:00Z'),
        ],
    }[direction]

    result = CrowdPredictor(schedules).predict(' lis ', '2025-12-31')

    assert result['airport'] == 'LIS'
    assert result['date'] == '2025-12-31'
    assert len(result['arrivals']) == 1
    assert len(result['departures']) == 1
    assert result['totalFlights'] == 2
    assert schedules.get_airport_flights.call_count == 2
    directions = {c.args[1] for c in schedules.get_airport_flights.call_args_list}
    assert directions == {'arrivals', 'departures'}


def test_predictor_propagates_upstream_errors():
    schedules = Mock()
    schedules.get_airport_flights.side_effect = UnauthorizedError('FlightAware', 'API key not configured')

    with pytest.raises(UnauthorizedError):
        CrowdPredictor(schedules).predict('LIS', '2025-12-31')
