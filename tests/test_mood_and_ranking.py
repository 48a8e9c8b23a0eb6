"""
Mood detection & re-ranking tests
"""
import pytest

from cinematch.services.mood_detector import MOOD_DICTIONARY, MoodDetector
from cinematch.services.ranking_service import RankingEngine


def mood(name):
    return next(entry for entry in MOOD_DICTIONARY if entry.mood == name)


@pytest.fixture
def detector():
    return MoodDetector()


@pytest.fixture
def ranking(detector):
    return RankingEngine(detector)


# ============================================
# MOOD DETECTION
# ============================================

class TestMoodDetector:

    def test_detects_keyword_case_insensitively(self, detector):
        assert detector.detect("Something SCARY for tonight").mood == "scary"

    def test_first_mood_in_table_wins(self, detector):
        # "uplifting" comes before "dark" in the table
        assert detector.detect("something dark but uplifting").mood == "uplifting"

    def test_substring_match(self, detector):
        assert detector.detect("I want something fun").mood == "light"

    @pytest.mark.parametrize("text", ["", "recommend me a movie", "what about sci-fi?"])
    def test_no_mood(self, detector, text):
        assert detector.detect(text) is None

    def test_no_overlap_scores_zero(self, detector):
        item = {"genres": ["Documentary"], "keywords": ["history"]}
        assert detector.score_match(item, mood("uplifting")) == 0.0

    def test_all_genres_score_genre_weight(self, detector):
        item = {"genres": ["Drama", "Family", "Romance", "Adventure"], "keywords": []}
        assert detector.score_match(item, mood("uplifting")) == pytest.approx(0.6)

    def test_uplifting_query_scenario(self, detector):
        detected = detector.detect("I want something uplifting")
        item = {"genres": ["Drama", "Family"], "keywords": []}
        assert detected.mood == "uplifting"
        assert detector.score_match(item, detected) == pytest.approx(0.3)

    def test_genre_match_ignores_case(self, detector):
        item = {"genres": ["drama", "FAMILY"], "keywords": []}
        assert detector.score_match(item, mood("uplifting")) == pytest.approx(0.3)

    def test_partial_genres(self, detector):
        item = {"genres": ["Horror"], "keywords": []}
        assert detector.score_match(item, mood("scary")) == pytest.approx(0.3)

    def test_keyword_matched_inside_movie_keyword(self, detector):
        item = {"genres": [], "keywords": ["very creepy doll"]}
        assert detector.score_match(item, mood("scary")) == pytest.approx(0.4 / 6)

    def test_full_match_is_bounded(self, detector):
        scary = mood("scary")
        item = {"genres": list(scary.genres) * 2, "keywords": list(scary.keywords)}
        assert detector.score_match(item, scary) == pytest.approx(1.0)

    def test_missing_fields(self, detector):
        assert detector.score_match({}, mood("epic")) == 0.0


# ============================================
# HYBRID FUSION
# ============================================

class TestHybridFusion:

    def test_weights_and_order(self):
        candidates = [
            {"id": 1, "similarity": 0.90, "popularity": 10},
            {"id": 2, "similarity": 0.95, "popularity": 5},
            {"id": 3, "similarity": 0.99, "popularity": 0},
        ]

        fused = RankingEngine.fuse_hybrid(candidates, 3)

        assert [c["id"] for c in fused] == [1, 2, 3]
        assert [c["score"] for c in fused] == pytest.approx([0.93, 0.815, 0.693])
        assert [c["normalized_popularity"] for c in fused] == pytest.approx([1.0, 0.5, 0.0])

    def test_zero_popularity_everywhere(self):
        candidates = [
            {"id": 1, "similarity": 0.5, "popularity": 0},
            {"id": 2, "similarity": 0.8, "popularity": 0},
        ]
        fused = RankingEngine.fuse_hybrid(candidates, 2)
        assert [c["id"] for c in fused] == [2, 1]
        assert fused[0]["score"] == pytest.approx(0.56)

    def test_ties_keep_retrieval_order(self):
        candidates = [{"id": i, "similarity": 0.5, "popularity": 1} for i in (7, 3, 9)]
        assert [c["id"] for c in RankingEngine.fuse_hybrid(candidates, 3)] == [7, 3, 9]

    def test_truncates_to_limit(self):
        candidates = [{"id": i, "similarity": i / 10, "popularity": i} for i in range(1, 6)]
        fused = RankingEngine.fuse_hybrid(candidates, 2)
        assert [c["id"] for c in fused] == [5, 4]

    def test_empty(self):
        assert RankingEngine.fuse_hybrid([], 10) == []

    def test_input_not_mutated(self):
        candidates = [{"id": 1, "similarity": 0.5, "popularity": 1}]
        RankingEngine.fuse_hybrid(candidates, 1)
        assert "score" not in candidates[0]


# ============================================
# MOOD RE-RANKING
# ============================================

class TestMoodRerank:

    def test_sorts_by_mood_score(self, ranking):
        candidates = [
            {"id": 1, "genres": ["Comedy"], "keywords": []},
            {"id": 2, "genres": ["Thriller", "Horror", "Crime", "Mystery"], "keywords": []},
            {"id": 3, "genres": [], "keywords": ["dark comedy"]},
        ]

        reranked = ranking.rerank_by_mood(candidates, mood("dark"), 10)

        assert [c["id"] for c in reranked] == [2, 3, 1]
        assert reranked[0]["mood_score"] == pytest.approx(0.6)

    def test_equal_scores_keep_order(self, ranking):
        candidates = [{"id": i, "genres": ["Horror"]} for i in (4, 2, 8)]
        reranked = ranking.rerank_by_mood(candidates, mood("scary"), 10)
        assert [c["id"] for c in reranked] == [4, 2, 8]

    def test_truncates(self, ranking):
        candidates = [{"id": i, "genres": []} for i in range(15)]
        assert len(ranking.rerank_by_mood(candidates, mood("epic"), 10)) == 10

    def test_no_mood_returns_input_unchanged(self, ranking):
        candidates = [{"id": 2}, {"id": 1}]
        assert ranking.rerank_by_mood(candidates, None) == candidates
        assert ranking.rerank_by_mood([], mood("epic")) == []
