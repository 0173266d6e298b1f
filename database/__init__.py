from .db import (
    DBBase,
    DBBaseClass,
    SessionLocal,
    get_db_session,
    get_engine,
    init_models,
    time_now,
)
