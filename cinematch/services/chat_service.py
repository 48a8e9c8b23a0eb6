"""
Chat Service - retrieval-augmented movie recommendations

Flow for one message:
1. Embed the message and retrieve the 10 closest movies
2. Detect a mood in the message
3. Load full movie metadata, conversation history and user preferences
4. Re-rank the context by mood (when one was detected)
5. Ask the text generator, with the context formatted into the prompt
6. Persist the exchange (a failed save does not fail the reply)
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional
import logging

from sqlalchemy.orm import Session, sessionmaker

from cinematch.database import run_in_session
from cinematch.exceptions import UpstreamUnavailableError
from cinematch.models.chat_message import ChatMessage
from cinematch.models.movie import Movie
from cinematch.services.catalog_store import CatalogRepository, VectorStore
from cinematch.services.embedding_client import EmbeddingClient
from cinematch.services.mood_detector import MoodDetector, MoodProfile
from cinematch.services.profile_service import ProfileService
from cinematch.services.ranking_service import RankingEngine

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """You are an expert movie recommendation assistant with deep knowledge of cinema. Your role is to help users discover movies they'll love based on their preferences, mood, or specific requests.

Guidelines:
1. Use the provided movie context to give personalized recommendations
2. Explain WHY you're recommending each movie (genre match, similar themes, cast/director, mood)
3. Be conversational and enthusiastic about movies
4. If asked about a specific genre/mood/theme, prioritize movies that match
5. Mention key details: title, year, director, main cast, and what makes it special
6. Keep responses concise but informative (2-4 movie recommendations per response)
7. If no relevant context is provided, be honest and suggest the user try different search terms

Always format your recommendations clearly with movie titles in **bold**."""


def _names(people, limit: int) -> str:
    names = [person.get("name") for person in (people or []) if isinstance(person, dict) and person.get("name")]
    return ", ".join(names[:limit]) or "Unknown"


def _director(crew) -> str:
    for person in crew or []:
        if isinstance(person, dict) and person.get("job") == "Director" and person.get("name"):
            return person["name"]
    return "Unknown"


def format_movie_context(movies: List[Dict]) -> str:
    """Render retrieved movies as numbered blocks for the prompt"""
    blocks = []
    for index, movie in enumerate(movies, start=1):
        year = (movie.get("release_date") or "")[:4] or "N/A"
        genres = ", ".join(movie.get("genres") or []) or "N/A"
        keywords = ", ".join((movie.get("keywords") or [])[:5]) or "N/A"
        rating = f"{movie['vote_average']}/10" if movie.get("vote_average") else "N/A"
        blocks.append("\n".join([
            f"Movie {index}:",
            f"- Title: {movie.get('title')} ({year})",
            f"- Tagline: {movie.get('tagline') or 'N/A'}",
            f"- Genres: {genres}",
            f"- Description: {movie.get('description') or 'No description available'}",
            f"- Keywords: {keywords}",
            f"- Director: {_director(movie.get('crew'))}",
            f"- Cast: {_names(movie.get('movie_cast'), 3)}",
            f"- Rating: {rating}",
        ]))
    return "\n\n".join(blocks)


def build_prompt_messages(
    user_message: str,
    context: List[Dict],
    history: Optional[List[Dict[str, str]]] = None,
    preferences: Optional[Dict] = None,
    mood: Optional[MoodProfile] = None,
) -> List[Dict[str, str]]:
    """System prompt + history + the user's question grounded in the retrieved movies"""
    system_prompt = SYSTEM_PROMPT

    if preferences and preferences.get("top_rated_movies"):
        favorites = "\n".join(
            f"- {movie['title']} (rated {movie['rating']}/10; {', '.join(movie.get('genres') or []) or 'N/A'})"
            for movie in preferences["top_rated_movies"]
        )
        system_prompt += f"\n\nThe user's favorite movies:\n{favorites}\nUse them to personalize your suggestions."

    if mood is not None:
        system_prompt += (
            f"\n\nThe user seems to be in a {mood.mood} mood. "
            f"Favor {', '.join(mood.genres)} movies that feel {', '.join(mood.keywords[:3])}."
        )

    formatted_context = format_movie_context(context)
    content = (
        f"Based on these movies:\n\n{formatted_context}\n\nUser question: {user_message}"
        if formatted_context else user_message
    )

    return [
        {"role": "system", "content": system_prompt},
        *(history or []),
        {"role": "user", "content": content},
    ]


class ChatService:

    CONTEXT_SIZE = 10
    HISTORY_LIMIT = 10

    def __init__(
        self,
        session_factory: sessionmaker,
        embedding_client: EmbeddingClient,
        vector_store: VectorStore,
        catalog: CatalogRepository,
        mood_detector: MoodDetector,
        ranking: RankingEngine,
        profile_service: ProfileService,
        text_generator,
    ):
        self.session_factory = session_factory
        self.embedding_client = embedding_client
        self.vector_store = vector_store
        self.catalog = catalog
        self.mood_detector = mood_detector
        self.ranking = ranking
        self.profile_service = profile_service
        self.text_generator = text_generator

    async def send_message(
        self,
        user_id: str,
        message: str,
        conversation_history: Optional[List[Dict[str, str]]] = None,
    ) -> Dict:
        """Process a user message and generate the AI response using RAG"""
        logger.info(f"Processing chat message for user {user_id}")

        query_embedding = await self.embedding_client.embed(message)
        relevant = await self.vector_store.nearest_neighbors(query_embedding, self.CONTEXT_SIZE)
        logger.info(f"Found {len(relevant)} relevant movies")

        mood = self.mood_detector.detect(message)
        if mood:
            logger.info(f"Detected mood: {mood.mood}")

        movie_ids = [movie["id"] for movie in relevant]
        context = await self.catalog.get_by_ids(movie_ids, fields=Movie.CONTEXT_FIELDS)

        history = conversation_history or []
        if not history:
            history = await self.get_conversation_history(user_id, self.HISTORY_LIMIT)
            if history:
                logger.info(f"Loaded {len(history)} previous messages for context")

        preferences = await self.profile_service.get_preferences(user_id)
        if preferences:
            logger.info(f"Using personalized context for user {user_id}")

        context = self.ranking.rerank_by_mood(context, mood, self.CONTEXT_SIZE)

        messages = build_prompt_messages(message, context, history, preferences, mood)
        ai_response = await self.text_generator.complete(messages)

        timestamp = await self._save_message(user_id, message, ai_response, movie_ids)
        logger.info(f"Generated AI response for user {user_id}")

        return {
            "user_message": message,
            "ai_response": ai_response,
            "context_movies": movie_ids,
            "mood": mood.mood if mood else None,
            "timestamp": timestamp,
        }

    async def _save_message(self, user_id: str, message: str, ai_response: str, movie_ids: List[int]) -> str:
        def _insert(db: Session) -> str:
            saved = ChatMessage(
                user_id=user_id,
                user_message=message,
                ai_response=ai_response,
                context_movies=movie_ids,
                created_at=datetime.now(timezone.utc),
            )
            db.add(saved)
            db.flush()
            return saved.created_at.isoformat()

        try:
            return await run_in_session(self.session_factory, _insert)
        except UpstreamUnavailableError as e:
            logger.warning(f"Failed to save chat message: {str(e)}")
            return datetime.now(timezone.utc).isoformat()

    async def get_conversation_history(self, user_id: str, limit: int = 20) -> List[Dict[str, str]]:
        """Most recent exchanges as chat messages, oldest first"""
        def _query(db: Session) -> List[Dict[str, str]]:
            rows = (
                db.query(ChatMessage)
                .filter(ChatMessage.user_id == user_id)
                .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
                .limit(limit)
                .all()
            )
            history = []
            for row in reversed(rows):
                history.append({"role": "user", "content": row.user_message})
                history.append({"role": "assistant", "content": row.ai_response})
            return history

        return await run_in_session(self.session_factory, _query)

    async def clear_conversation_history(self, user_id: str) -> int:
        def _delete(db: Session) -> int:
            return db.query(ChatMessage).filter(ChatMessage.user_id == user_id).delete()

        deleted = await run_in_session(self.session_factory, _delete)
        logger.info(f"Cleared conversation history for user {user_id}")
        return deleted
