from sqlalchemy import BigInteger, Column, Integer, Text

from fallback_bot.database import Base


class SystemStatus(Base):
    __tablename__ = "system_status"

    id = Column(Text, primary_key=True, default="server")
    status = Column(Text, nullable=False)
    last_connection = Column(Text)
    last_shutdown = Column(Text)
    shutdown_reason = Column(Text)
    server_timezone = Column(Text)
    server_timestamp = Column(BigInteger)


class SystemErrorRecord(Base):
    __tablename__ = "system_errors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(Text, nullable=False)
    local_time = Column(Text)
    error = Column(Text, nullable=False)
    stack = Column(Text)
