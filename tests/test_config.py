"""
Tests for settings validation and the league allowlist
"""
import pytest
from pydantic import ValidationError

from footbot.core.config import Settings
from footbot.domain.services.competition_scope import league_id_matcher, parse_league_id_allowlist
from tests.factories import make_fixture


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestSettings:
    @pytest.mark.unit
    @pytest.mark.parametrize("raw", ["0", "-5", "abc", ""])
    def test_non_positive_numbers_fall_back_to_default(self, raw):
        settings = _settings(LIVE_EVENTS_INTERVAL_SECONDS=raw, YT_MAX_RESULTS=raw)

        assert settings.LIVE_EVENTS_INTERVAL_SECONDS == 60
        assert settings.YT_MAX_RESULTS == 10

    @pytest.mark.unit
    def test_positive_number_is_kept(self):
        assert _settings(REDDIT_CACHE_MINUTES="15").REDDIT_CACHE_MINUTES == 15

    @pytest.mark.unit
    def test_runner_and_store_are_normalized(self):
        settings = _settings(LIVE_EVENTS_RUNNER=" Celery ", LIVE_EVENTS_STORE="DATABASE")

        assert settings.LIVE_EVENTS_RUNNER == "celery"
        assert settings.LIVE_EVENTS_STORE == "database"

    @pytest.mark.unit
    def test_unknown_runner_is_rejected(self):
        with pytest.raises(ValidationError):
            _settings(LIVE_EVENTS_RUNNER="cron")

    @pytest.mark.unit
    def test_unknown_store_is_rejected(self):
        with pytest.raises(ValidationError):
            _settings(LIVE_EVENTS_STORE="mongo")

    @pytest.mark.unit
    def test_celery_runner_needs_a_shared_store(self):
        with pytest.raises(ValidationError):
            _settings(LIVE_EVENTS_RUNNER="celery", LIVE_EVENTS_STORE="memory")

    @pytest.mark.unit
    def test_postgres_url_is_made_async(self):
        settings = _settings(DATABASE_URL="postgres://u:p@db:5432/footbot")
        assert settings.DATABASE_URL == "postgresql+asyncpg://u:p@db:5432/footbot"


class TestLeagueAllowlist:
    @pytest.mark.unit
    def test_parse_drops_invalid_entries(self):
        assert parse_league_id_allowlist(" 39, 140,x,,2 ") == frozenset({39, 140, 2})

    @pytest.mark.unit
    @pytest.mark.parametrize("raw", [None, "", "abc"])
    def test_empty_allowlist(self, raw):
        assert parse_league_id_allowlist(raw) == frozenset()

    @pytest.mark.unit
    def test_matcher(self):
        matches = league_id_matcher({39, 140})

        assert matches(make_fixture(league_id=39))
        assert not matches(make_fixture(league_id=2))
        assert not matches(make_fixture(league={"name": "Friendly"}))
