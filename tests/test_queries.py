"""
Tests for the search query builders
"""
import pytest

from footbot.domain.services.queries import MAX_QUERIES, build_post_queries, build_video_queries
from tests.factories import make_event


class TestVideoQueries:
    @pytest.mark.unit
    def test_first_query_is_most_specific(self):
        q1, q2 = build_video_queries(make_event())

        assert q1.startswith('"Arsenal" "Chelsea" Premier League Red Card Cole Palmer 60\' highlights')
        assert q1.endswith("-fifa -efootball -fc24 -pes -betting -tips")
        assert q2 == '"Arsenal" "Chelsea" Red Card official highlights -fifa -efootball -fc24 -pes -betting -tips'

    @pytest.mark.unit
    def test_fallback_omits_player_and_minute(self):
        _, q2 = build_video_queries(make_event())
        assert "Cole Palmer" not in q2
        assert "60'" not in q2

    @pytest.mark.unit
    def test_blank_fields_are_dropped_and_whitespace_collapsed(self):
        event = make_event(league="  ", player="", minute_label="N/A", event_detail="  Red   Card ")
        q1, _ = build_video_queries(event)

        assert "  " not in q1
        assert "N/A" not in q1
        assert q1.startswith('"Arsenal" "Chelsea" Red Card highlights')

    @pytest.mark.unit
    def test_detail_falls_back_to_type(self):
        q1, _ = build_video_queries(make_event(event_detail="", event_type="Var"))
        assert " Var " in q1

    @pytest.mark.unit
    def test_never_more_than_two(self):
        assert len(build_video_queries(make_event())) <= MAX_QUERIES


class TestPostQueries:
    @pytest.mark.unit
    def test_queries(self):
        q1, q2 = build_post_queries(make_event())

        assert q1 == (
            '"Arsenal" "Chelsea" Red Card Cole Palmer '
            "(subreddit:soccer OR subreddit:footballhighlights)"
        )
        assert q2 == (
            '"Arsenal" "Chelsea" Premier League highlights '
            "(subreddit:soccer OR subreddit:footballhighlights)"
        )

    @pytest.mark.unit
    def test_missing_team_names_are_not_quoted_empty(self):
        q1, _ = build_post_queries(make_event(home="", away=""))
        assert '""' not in q1
