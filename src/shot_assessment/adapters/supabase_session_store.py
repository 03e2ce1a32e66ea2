"""Supabase-backed session store."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from shot_assessment.domain.assessments import AssessmentSession, SessionKey
from shot_assessment.services.store import SessionStore

_TABLE = "assessment_sessions"


@dataclass
class SupabaseSessionStore(SessionStore):
    """Supabase implementation keeping one row per (shoot, room)."""

    client: Client

    def get(self, key: SessionKey) -> AssessmentSession | None:
        """Return a session by key, if present."""
        response = (
            self.client.table(_TABLE)
            .select("shoot_id, room_type, state_json")
            .eq("shoot_id", key.shoot_id)
            .eq("room_type", key.room_type)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return AssessmentSession.model_validate(response.data[0]["state_json"])

    def get_or_create(self, key: SessionKey) -> AssessmentSession:
        """Return a session by key, inserting a fresh row when absent."""
        session = self.get(key)
        if session is not None:
            return session
        session = AssessmentSession.fresh(key)
        self.put(session)
        return session

    def put(self, session: AssessmentSession) -> None:
        """Upsert a session row."""
        self.client.table(_TABLE).upsert(
            {
                "shoot_id": session.shoot_id,
                "room_type": session.room_type,
                "state_json": session.model_dump(mode="json", by_alias=True),
                "updated_at": datetime.now(tz=UTC).isoformat(),
            },
            on_conflict="shoot_id,room_type",
        ).execute()

    def delete_all(self, shoot_id: str) -> int:
        """Delete every room row for a shoot."""
        response = (
            self.client.table(_TABLE).delete().eq("shoot_id", shoot_id).execute()
        )
        return len(response.data or [])
