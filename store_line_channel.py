"""Store (or replace) the encrypted LINE channel access token for a user."""
import argparse
import asyncio
from uuid import UUID

from sqlalchemy import delete

from src.richmenu.infrastructure.models import LineChannelModel
from src.shared.database import close_database_engine, get_session
from src.shared.security import get_token_cipher


async def _store(user_id: UUID, access_token: str, channel_id: str | None) -> None:
    Session = get_session()
    async with Session() as session:
        await session.execute(delete(LineChannelModel).where(LineChannelModel.user_id == user_id))
        session.add(
            LineChannelModel(
                user_id=user_id,
                channel_id=channel_id,
                access_token_encrypted=get_token_cipher().encrypt(access_token),
            )
        )
        await session.commit()
    await close_database_engine()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("user_id", type=UUID)
    parser.add_argument("access_token")
    parser.add_argument("--channel-id", default=None)
    args = parser.parse_args()

    asyncio.run(_store(args.user_id, args.access_token, args.channel_id))
    print(f"LINE channel stored for {args.user_id}")
