import logging
from collections import OrderedDict

from services.profile_engine.engine import ProfileEngine
from services.profile_engine.errors import SessionNotFoundError
from services.profile_engine.models import PersonalityProfile, SessionStatus
from services.profile_engine.refinement import RefinementSession, SessionStore
from src.services.storage import load_session, save_profile

logger = logging.getLogger(__name__)

DEFAULT_LIVE_SESSIONS = 500
SETTLED = (SessionStatus.COMPLETE, SessionStatus.PAUSED)


class SessionRegistry:
    """
    Live refinement sessions by id, bounded like the result cache (least
    recently used first out). Sessions that are not in memory, after a
    restart or an eviction, are restored from the store on demand.
    """

    def __init__(self, engine: ProfileEngine, store: SessionStore, capacity: int = DEFAULT_LIVE_SESSIONS):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.engine = engine
        self.store = store
        self.capacity = capacity
        self._sessions: "OrderedDict[str, RefinementSession]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def _remember(self, session: RefinementSession) -> None:
        self._sessions[session.session_id] = session
        self._sessions.move_to_end(session.session_id)
        while len(self._sessions) > self.capacity:
            evicted_id, evicted = self._sessions.popitem(last=False)
            if not evicted.persisted:
                logger.warning(f"Evicted session {evicted_id} whose latest state never reached the store")
            else:
                logger.debug(f"Evicted least recently used session {evicted_id}")

    async def open(self, user_id: str, profile: PersonalityProfile) -> RefinementSession:
        session = self.engine.open_session(user_id, profile)
        self._remember(session)
        await save_profile(self.store, user_id, profile)
        return session

    async def get(self, session_id: str) -> RefinementSession:
        session = self._sessions.get(session_id)
        if session is not None:
            self._sessions.move_to_end(session_id)
            return session
        state = await load_session(self.store, session_id)
        if state is None:
            raise SessionNotFoundError(session_id)
        logger.info(f"Restored session {session_id} from store")
        session = self.engine.restore_session(state)
        session.persisted = True
        self._remember(session)
        return session

    def release(self, session: RefinementSession) -> bool:
        """
        Drops a complete or paused session from memory once its state is in
        the store. Returns whether it was dropped.
        """
        if session.status not in SETTLED or not session.persisted:
            return False
        if self._sessions.pop(session.session_id, None) is None:
            return False
        logger.debug(f"Released settled session {session.session_id} ({session.status.value})")
        return True
