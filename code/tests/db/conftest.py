import pytest

from kaiseki.config import Settings
from kaiseki.db.engine import create_db_engine, create_session_factory, init_db


@pytest.fixture
async def session_factory(tmp_path):
    settings = Settings(_env_file=None, db={"url": f"sqlite+aiosqlite:///{tmp_path}/k.db"})
    engine = create_db_engine(settings)
    await init_db(engine)
    yield create_session_factory(engine)
    await engine.dispose()
