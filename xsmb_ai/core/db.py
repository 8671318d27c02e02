"""
Database layer using SQLAlchemy for safer access
"""
import json
from sqlalchemy import create_engine, Column, String, Text
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from xsmb_ai.config import DB_URL, PRIZE_TIERS, logger
from xsmb_ai.core.records import DrawRecord

Base = declarative_base()


def tier_column(tier):
    return tier.replace('-', '_')


class DrawResult(Base):
    __tablename__ = 'draw_results'

    draw_date = Column(String, primary_key=True)  # ISO yyyy-mm-dd, sortable
    display_date = Column(String, nullable=False)  # DD/MM/YYYY
    giai_db = Column(Text)  # JSON list per tier
    giai_nhat = Column(Text)
    giai_nhi = Column(Text)
    giai_ba = Column(Text)
    giai_tu = Column(Text)
    giai_nam = Column(Text)
    giai_sau = Column(Text)
    giai_bay = Column(Text)
    open_time = Column(String)
    open_num = Column(String)

    @classmethod
    def from_record(cls, record):
        row = cls(
            draw_date=record.draw_date.isoformat(),
            display_date=record.date,
            open_time=record.open_time,
            open_num=record.open_num,
        )
        row.set_tiers(record.prize_tiers)
        return row

    def set_tiers(self, prize_tiers):
        for tier in PRIZE_TIERS:
            setattr(self, tier_column(tier), json.dumps(list(prize_tiers.get(tier, ()))))

    def to_record(self):
        tiers = {}
        for tier in PRIZE_TIERS:
            raw = getattr(self, tier_column(tier))
            tiers[tier] = tuple(json.loads(raw)) if raw else ()
        return DrawRecord(
            date=self.display_date,
            prize_tiers=tiers,
            open_time=self.open_time,
            open_num=self.open_num,
        )


class StoreMeta(Base):
    __tablename__ = 'store_meta'

    key = Column(String, primary_key=True)
    value = Column(String)


def make_engine(url):
    if url.startswith('sqlite'):
        kwargs = {'connect_args': {'check_same_thread': False}}
        # in-memory databases must share one connection
        if url in ('sqlite://', 'sqlite:///:memory:'):
            kwargs['poolclass'] = StaticPool
        return create_engine(url, echo=False, **kwargs)
    return create_engine(url, echo=False)


def make_session_factory(url):
    """Engine + tables + sessionmaker for a database URL"""
    db_engine = make_engine(url)
    Base.metadata.create_all(db_engine)
    return sessionmaker(bind=db_engine)


# Database engine and session
engine = make_engine(DB_URL)
SessionLocal = sessionmaker(bind=engine)


def init_db():
    """Initialize database tables"""
    try:
        Base.metadata.create_all(engine)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise
