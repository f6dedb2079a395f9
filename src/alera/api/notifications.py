"""AI assistant notification counters.

Only the unread badge lives here: how many assistant messages the caller
hasn't seen, and a way to clear them. Marking read is a bulk, idempotent
operation, so clearing an already-clear inbox is still a success.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from alera.auth.dependencies import CurrentIdentity, authenticated
from alera.db.engine import get_db
from alera.db.models import AiChatMessage

router = APIRouter(prefix="/ai-agent/notifications")


def _unread_for(user_id: int):
    return (
        AiChatMessage.user_id == user_id,
        AiChatMessage.is_user_message.is_(False),
        AiChatMessage.is_unread.is_(True),
    )


@router.get("/unread-count")
async def unread_count(
    identity: CurrentIdentity = Depends(authenticated),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(func.count(AiChatMessage.id)).where(*_unread_for(identity.user_id))
    )
    return {"unread": int(result.scalar_one())}


@router.post("/mark-read")
async def mark_read(
    identity: CurrentIdentity = Depends(authenticated),
    db: AsyncSession = Depends(get_db),
):
    await db.execute(
        update(AiChatMessage)
        .where(*_unread_for(identity.user_id))
        .values(is_unread=False)
    )
    await db.commit()
    return {"success": True}
