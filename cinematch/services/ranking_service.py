"""
Re-ranking / Fusion Engine
Reorders retrieval candidates using secondary signals (mood match, popularity).

All sorts are stable: candidates with equal scores keep their retrieval order.
"""
from typing import Dict, List, Optional, Sequence
import logging

from cinematch.services.mood_detector import MoodDetector, MoodProfile

logger = logging.getLogger(__name__)


class RankingEngine:
    """
    - Mood re-ranking: sort by MoodDetector.score_match
    - Hybrid fusion: 0.7 x similarity + 0.3 x normalized popularity
    """

    # Hybrid recommendation weights
    HYBRID_SIMILARITY_WEIGHT = 0.7
    HYBRID_POPULARITY_WEIGHT = 0.3

    MOOD_RERANK_LIMIT = 10

    def __init__(self, mood_detector: MoodDetector):
        self.mood_detector = mood_detector

    def rerank_by_mood(
        self,
        candidates: Sequence[Dict],
        mood: Optional[MoodProfile],
        limit: int = MOOD_RERANK_LIMIT,
    ) -> List[Dict]:
        """
        Sort candidates by how well they match the mood and keep the top `limit`.
        Without a mood or candidates the list is returned unchanged.
        """
        if mood is None or not candidates:
            return list(candidates)

        scored = [
            {**candidate, "mood_score": self.mood_detector.score_match(candidate, mood)}
            for candidate in candidates
        ]
        scored.sort(key=lambda candidate: candidate["mood_score"], reverse=True)
        logger.info(f"Re-ranked {len(scored)} movies by mood: {mood.mood}")
        return scored[:limit]

    @classmethod
    def fuse_hybrid(cls, candidates: Sequence[Dict], limit: int) -> List[Dict]:
        """
        Combine profile similarity with popularity

        normalized_popularity = popularity / max popularity in the set (0 if max is 0)
        score = 0.7 * similarity + 0.3 * normalized_popularity
        """
        if not candidates:
            return []

        max_popularity = max((candidate.get("popularity") or 0) for candidate in candidates)

        fused = []
        for candidate in candidates:
            normalized = (candidate.get("popularity") or 0) / max_popularity if max_popularity > 0 else 0.0
            score = (
                cls.HYBRID_SIMILARITY_WEIGHT * (candidate.get("similarity") or 0)
                + cls.HYBRID_POPULARITY_WEIGHT * normalized
            )
            fused.append({**candidate, "normalized_popularity": normalized, "score": score})

        fused.sort(key=lambda candidate: candidate["score"], reverse=True)
        return fused[:limit]
