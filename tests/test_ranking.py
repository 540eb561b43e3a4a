"""
Tests for video ranking
"""
from datetime import timedelta

import pytest

from footbot.domain.services.ranking import (
    DEFAULT_SPAM_KEYWORDS,
    parse_spam_keywords,
    rank_videos,
    score_video,
)
from tests.factories import NOW, make_event, make_result


class TestScoreVideo:
    @pytest.fixture
    def event(self):
        return make_event()

    @pytest.mark.unit
    def test_both_teams_beat_neither(self, event):
        """same length, no other signals: only the team names differ"""
        both = make_result("a", title="Arsenal v Chelsea match recap")
        neither = make_result("b", title="Everton v Fulham match recap")

        assert score_video(both, event, now=NOW) > score_video(neither, event, now=NOW)

    @pytest.mark.unit
    def test_both_teams_bonus_and_one_team_bonus(self, event):
        both = make_result("a", title="Arsenal v Chelsea match recap")
        one = make_result("b", title="Arsenal v Everton match recap")
        neither = make_result("c", title="Burnley v Everton match recap")

        assert score_video(both, event, now=NOW) - score_video(neither, event, now=NOW) == 40
        assert score_video(one, event, now=NOW) - score_video(neither, event, now=NOW) == 18

    @pytest.mark.unit
    @pytest.mark.parametrize("home,away,other", [
        ("Real Madrid", "Real Sociedad", "Getafe"),
        ("Manchester United", "Manchester City", "Everton"),
    ])
    def test_shared_name_token_does_not_count_for_both_sides(self, home, away, other):
        event = make_event(home=home, away=away)
        derby = make_result("a", title=f"{home} vs {away} full match recap")
        one_side = make_result("b", title=f"{home} vs {other} full match recap")
        neither = make_result("c", title="Burnley vs Fulham full match recap")

        assert score_video(derby, event, now=NOW) - score_video(neither, event, now=NOW) == 40
        assert score_video(one_side, event, now=NOW) > score_video(neither, event, now=NOW)
        assert score_video(derby, event, now=NOW) > score_video(one_side, event, now=NOW)

    @pytest.mark.unit
    def test_team_without_distinct_token_matches_on_full_name(self):
        event = make_event(home="Sporting", away="Sporting CP")
        both = make_result("a", title="Sporting v Sporting CP match recap")
        braga = make_result("b", title="Sporting Braga v Benfica recap")
        neither = make_result("c", title="Porto v Benfica match recap")

        assert score_video(both, event, now=NOW) - score_video(neither, event, now=NOW) == 40
        # "sporting" alone is the home side only; "sporting cp" is not in the title
        assert score_video(braga, event, now=NOW) - score_video(neither, event, now=NOW) == 18

    @pytest.mark.unit
    def test_token_bonuses(self, event):
        base = score_video(make_result("a", title="a plain video title"), event, now=NOW)
        # premier(+4) league(+4) red(+3 detail, +2 generic) card(+3 detail, +2 generic)
        rich = score_video(make_result("b", title="premier league red card now"), event, now=NOW)
        assert rich - base == 4 + 4 + 3 + 2 + 3 + 2

    @pytest.mark.unit
    def test_short_and_long_titles_penalized(self, event):
        normal = score_video(make_result("a", title="x" * 20), event, now=NOW)
        short = score_video(make_result("b", title="x" * 11), event, now=NOW)
        long = score_video(make_result("c", title="x" * 141), event, now=NOW)

        assert normal - short == 8
        assert normal - long == 5

    @pytest.mark.unit
    def test_spam_keyword_penalty_per_keyword(self, event):
        clean = score_video(make_result("a", title="Arsenal v Chelsea match recap"), event, now=NOW)
        spam = score_video(make_result("b", title="Arsenal v Chelsea FIFA betting"), event, now=NOW)
        # two spam hits, same length class
        assert clean - spam == 50

    @pytest.mark.unit
    def test_spam_keywords_match_whole_words(self, event):
        """"pes" does not hit "pesky" """
        title = "Arsenal v Chelsea pesky defending"
        assert score_video(make_result("a", title=title), event, ["pes"], now=NOW) == \
            score_video(make_result("a", title=title), event, [], now=NOW)

    @pytest.mark.unit
    def test_recency_bonus(self, event):
        title = "Arsenal v Chelsea match recap"
        old = score_video(make_result("a", title=title, published_at=NOW - timedelta(days=10)), event, now=NOW)
        day = score_video(make_result("b", title=title, published_at=NOW - timedelta(hours=3)), event, now=NOW)
        three_days = score_video(make_result("c", title=title, published_at=NOW - timedelta(hours=48)), event, now=NOW)

        assert day - old == 8
        assert three_days - old == 4


class TestRankVideos:
    @pytest.mark.unit
    def test_orders_by_score_then_newest(self):
        event = make_event()
        older = make_result("old", title="Arsenal v Chelsea match recap", published_at=NOW - timedelta(days=5))
        newer = make_result("new", title="Arsenal v Chelsea match recap", published_at=NOW - timedelta(days=4))
        unknown = make_result("unk", title="Arsenal v Chelsea match recap")
        best = make_result("best", title="Arsenal v Chelsea red card highlights", published_at=NOW - timedelta(days=6))

        ranked = rank_videos([unknown, older, best, newer], event, now=NOW)

        assert [r.external_id for r in ranked] == ["best", "new", "old", "unk"]
        assert all(r.score is not None for r in ranked)


class TestParseSpamKeywords:
    @pytest.mark.unit
    def test_empty_uses_defaults(self):
        assert parse_spam_keywords("") == DEFAULT_SPAM_KEYWORDS
        assert parse_spam_keywords(None) == DEFAULT_SPAM_KEYWORDS

    @pytest.mark.unit
    def test_csv_is_normalized(self):
        assert parse_spam_keywords(" FIFA , ,Dream League") == ("fifa", "dream league")
