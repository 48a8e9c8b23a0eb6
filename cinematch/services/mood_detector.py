"""
Mood Detector - keyword based mood classification for chat / search queries

Matching is first-match-wins in table order: the first mood that has any
trigger keyword inside the query is returned, even if a later mood has
more hits. Order of MOOD_DICTIONARY therefore matters.
"""
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MoodProfile:
    mood: str
    keywords: Sequence[str]
    genres: Sequence[str]


MOOD_DICTIONARY: List[MoodProfile] = [
    MoodProfile(
        mood='uplifting',
        keywords=('inspiring', 'uplifting', 'positive', 'heartwarming', 'feel-good', 'motivational', 'hopeful'),
        genres=('Drama', 'Family', 'Romance', 'Adventure'),
    ),
    MoodProfile(
        mood='dark',
        keywords=('dark', 'grim', 'noir', 'disturbing', 'twisted', 'psychological', 'bleak'),
        genres=('Thriller', 'Horror', 'Crime', 'Mystery'),
    ),
    MoodProfile(
        mood='intense',
        keywords=('intense', 'thrilling', 'suspenseful', 'gripping', 'edge-of-your-seat', 'action-packed'),
        genres=('Action', 'Thriller', 'War', 'Crime'),
    ),
    MoodProfile(
        mood='light',
        keywords=('light', 'fun', 'entertaining', 'casual', 'easy-going', 'relaxing'),
        genres=('Comedy', 'Romance', 'Animation', 'Family'),
    ),
    MoodProfile(
        mood='emotional',
        keywords=('emotional', 'touching', 'moving', 'tearjerker', 'heartfelt', 'poignant'),
        genres=('Drama', 'Romance', 'Family'),
    ),
    MoodProfile(
        mood='cerebral',
        keywords=('mind-bending', 'thought-provoking', 'complex', 'intellectual', 'cerebral', 'philosophical'),
        genres=('Science Fiction', 'Thriller', 'Mystery', 'Drama'),
    ),
    MoodProfile(
        mood='scary',
        keywords=('scary', 'terrifying', 'creepy', 'horrifying', 'frightening', 'eerie'),
        genres=('Horror', 'Thriller'),
    ),
    MoodProfile(
        mood='epic',
        keywords=('epic', 'grand', 'spectacular', 'sweeping', 'monumental', 'legendary'),
        genres=('Adventure', 'Fantasy', 'Action', 'War'),
    ),
]


class MoodDetector:
    """Maps free text to a MoodProfile and scores movies against it"""

    GENRE_WEIGHT = 0.6
    KEYWORD_WEIGHT = 0.4

    def __init__(self, moods: Sequence[MoodProfile] = tuple(MOOD_DICTIONARY)):
        self.moods = list(moods)

    def detect(self, text: str) -> Optional[MoodProfile]:
        """Return the first mood whose trigger keyword occurs in text (case-insensitive)"""
        if not text:
            return None

        lowered = text.lower()
        for entry in self.moods:
            for keyword in entry.keywords:
                if keyword in lowered:
                    logger.debug(f"Detected mood '{entry.mood}' via keyword '{keyword}'")
                    return entry
        return None

    def score_match(self, item: Mapping[str, Any], mood: MoodProfile) -> float:
        """
        Score a movie against a mood, 0.0 - 1.0

        - 0.6 x share of the mood's genres found in the movie's genres
        - 0.4 x share of the mood's keywords found inside the movie's keywords
        Both shares are over the mood's lists, not the movie's.
        """
        # Case-insensitive substring match: "Drama" also hits "drama" and "Docudrama"
        movie_genres = [str(g).lower() for g in (item.get('genres') or [])]
        movie_keywords = [str(k).lower() for k in (item.get('keywords') or [])]

        genre_hits = sum(
            1 for genre in mood.genres
            if any(genre.lower() in movie_genre for movie_genre in movie_genres)
        )
        keyword_hits = sum(
            1 for keyword in mood.keywords
            if any(keyword in movie_keyword for movie_keyword in movie_keywords)
        )

        score = (genre_hits / max(len(mood.genres), 1)) * self.GENRE_WEIGHT
        score += (keyword_hits / max(len(mood.keywords), 1)) * self.KEYWORD_WEIGHT
        return min(score, 1.0)
