"""
运行历史 - SQLite

功能:
- 记录每次运行的汇总
- 记录每个文件的操作
- 按数量自动清理旧记录
"""

from sqlalchemy import create_engine, Column, Integer, String, DateTime, Boolean, Text, ForeignKey
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List
import structlog

from logrotate_sync.core.synchronizer import SyncResult

logger = structlog.get_logger()

Base = declarative_base()


# ========== 数据模型 ==========

class SyncRun(Base):
    """一次运行"""
    __tablename__ = 'sync_runs'

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(DateTime, default=datetime.now, index=True)
    hostname = Column(String(255), index=True)
    dry_run = Column(Boolean, default=False)
    success = Column(Boolean, default=True, index=True)
    written = Column(Integer, default=0)
    skipped = Column(Integer, default=0)
    deleted = Column(Integer, default=0)
    errors = Column(Integer, default=0)

    actions = relationship("FileAction", back_populates="run", cascade="all, delete-orphan")


class FileAction(Base):
    """单个文件的操作"""
    __tablename__ = 'file_actions'

    id = Column(Integer, primary_key=True, autoincrement=True)
    run_id = Column(Integer, ForeignKey('sync_runs.id'), index=True)
    path = Column(String(500), index=True)
    action = Column(String(20))  # written, skipped, deleted, backed_up, read, write, delete, backup, refuse
    success = Column(Boolean, default=True)
    message = Column(Text, nullable=True)

    run = relationship("SyncRun", back_populates="actions")


# ========== 历史管理器 ==========

class HistoryStore:
    """运行历史存储"""

    def __init__(self, db_path: str = "/var/lib/logrotate-sync/history.db"):
        """
        初始化历史存储

        Args:
            db_path: 数据库文件路径
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(f'sqlite:///{self.db_path}', echo=False)
        Base.metadata.create_all(self.engine)

        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine
        )

        logger.debug("History store initialized", path=str(self.db_path))

    def get_session(self):
        """获取数据库会话"""
        return self.SessionLocal()

    def record_run(self, hostname: str, result: SyncResult) -> int:
        """
        记录一次运行

        Args:
            hostname: 主机名
            result: 同步结果

        Returns:
            运行记录 ID
        """
        session = self.get_session()
        try:
            run = SyncRun(
                hostname=hostname,
                dry_run=result.dry_run,
                success=not result.failed,
                written=len(result.written),
                skipped=len(result.skipped),
                deleted=len(result.deleted),
                errors=len(result.errors),
            )
            for action, paths in (
                ('written', result.written),
                ('skipped', result.skipped),
                ('deleted', result.deleted),
                ('backed_up', result.backed_up),
            ):
                run.actions.extend(FileAction(path=p, action=action, success=True) for p in paths)
            run.actions.extend(
                FileAction(path=e.path, action=e.action, success=False, message=e.message)
                for e in result.errors
            )
            session.add(run)
            session.commit()
            logger.debug("Run recorded", run_id=run.id, actions=len(run.actions))
            return run.id
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def recent_runs(self, limit: int = 10) -> List[Dict[str, Any]]:
        """最近的运行记录，新的在前"""
        session = self.get_session()
        try:
            runs = (
                session.query(SyncRun)
                .order_by(SyncRun.timestamp.desc(), SyncRun.id.desc())
                .limit(limit)
                .all()
            )
            return [
                {
                    'id': run.id,
                    'timestamp': run.timestamp.isoformat(timespec='seconds'),
                    'hostname': run.hostname,
                    'dry_run': run.dry_run,
                    'success': run.success,
                    'written': run.written,
                    'skipped': run.skipped,
                    'deleted': run.deleted,
                    'errors': run.errors,
                    'failed_files': [
                        {'path': a.path, 'action': a.action, 'message': a.message}
                        for a in run.actions if not a.success
                    ],
                }
                for run in runs
            ]
        finally:
            session.close()

    def cleanup(self, keep_runs: int = 100) -> int:
        """
        删除超出数量限制的旧记录

        Returns:
            删除的运行记录数
        """
        session = self.get_session()
        try:
            stale = (
                session.query(SyncRun)
                .order_by(SyncRun.timestamp.desc(), SyncRun.id.desc())
                .offset(keep_runs)
                .all()
            )
            for run in stale:
                session.delete(run)
            session.commit()
            if stale:
                logger.info("Old run history cleaned up", removed=len(stale), kept=keep_runs)
            return len(stale)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
