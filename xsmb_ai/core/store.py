"""
Result stores - newest-first draw history.

SqlResultStore persists through SQLAlchemy; InMemoryResultStore keeps a
plain list and is what tests inject into the prediction engine.
"""
import json
from datetime import datetime
from xsmb_ai.config import MAX_STORED_RESULTS, EXPORT_VERSION, logger
from xsmb_ai.core.records import DrawRecord, InvalidRecordError, normalize_date, parse_date
from xsmb_ai.core.db import DrawResult, StoreMeta, SessionLocal, init_db

LAST_UPDATE_KEY = 'last_update'


def _coerce(record):
    if isinstance(record, DrawRecord):
        return record
    return DrawRecord.from_dict(record)


def parse_import(json_data):
    """
    Validate exported JSON and return its records, newest first.

    Raises ValueError when the payload itself is unusable; bad entries are
    skipped with a warning.
    """
    data = json.loads(json_data)
    if not isinstance(data, dict) or not isinstance(data.get('results'), list):
        raise ValueError("Invalid data format")

    records = {}
    for entry in data['results']:
        try:
            record = DrawRecord.from_dict(entry)
        except InvalidRecordError as e:
            logger.warning(f"Skipping invalid imported result: {e}")
            continue
        records[record.date] = record

    return sorted(records.values(), key=lambda r: r.draw_date, reverse=True)


def build_export(results):
    return json.dumps({
        'results': [r.to_dict() for r in results],
        'exported_at': datetime.now().isoformat(),
        'version': EXPORT_VERSION,
    }, indent=2, ensure_ascii=False)


class InMemoryResultStore:
    """List-backed store, newest first"""

    def __init__(self, records=None, max_results=MAX_STORED_RESULTS):
        self.max_results = max_results
        self._results = []
        self._last_update = None
        for record in records or []:
            self.save_result(record)

    def save_result(self, record):
        try:
            record = _coerce(record)
        except InvalidRecordError as e:
            logger.warning(f"Not saving invalid result: {e}")
            return False

        self._results = [r for r in self._results if r.date != record.date]
        self._results.append(record)
        self._results.sort(key=lambda r: r.draw_date, reverse=True)
        del self._results[self.max_results:]
        self._last_update = datetime.now().isoformat()
        return True

    def get_all_results(self):
        return list(self._results)

    def get_results_by_days(self, days):
        if days <= 0:
            return []
        return self._results[:days]

    def get_latest_result(self):
        return self._results[0] if self._results else None

    def get_result_count(self):
        return len(self._results)

    def find_by_date(self, date_str):
        target = normalize_date(date_str)
        for record in self._results:
            if record.date == target:
                return record
        return None

    def export_data(self):
        return build_export(self._results)

    def import_data(self, json_data):
        try:
            records = parse_import(json_data)
        except ValueError as e:
            logger.error(f"Error importing data: {e}")
            return False

        self._results = records[:self.max_results]
        self._last_update = datetime.now().isoformat()
        logger.info(f"Imported {len(self._results)} results")
        return True

    def clear_all(self):
        self._results = []
        self._last_update = None
        logger.info("All data cleared")

    def get_last_update(self):
        return self._last_update


class SqlResultStore:
    """SQLAlchemy-backed store"""

    def __init__(self, session_factory=None, max_results=MAX_STORED_RESULTS):
        if session_factory is None:
            init_db()
            session_factory = SessionLocal
        self.session_factory = session_factory
        self.max_results = max_results

    def _touch(self, session):
        meta = session.get(StoreMeta, LAST_UPDATE_KEY)
        if meta is None:
            meta = StoreMeta(key=LAST_UPDATE_KEY)
            session.add(meta)
        meta.value = datetime.now().isoformat()

    def _trim(self, session):
        stale = session.query(DrawResult).order_by(
            DrawResult.draw_date.desc()
        ).offset(self.max_results).all()
        for row in stale:
            session.delete(row)
        if stale:
            logger.info(f"Dropped {len(stale)} results beyond retention limit")

    def save_result(self, record):
        """Insert or replace the draw for this date"""
        try:
            record = _coerce(record)
        except InvalidRecordError as e:
            logger.warning(f"Not saving invalid result: {e}")
            return False

        session = self.session_factory()
        try:
            row = DrawResult.from_record(record)
            session.merge(row)
            session.flush()
            self._trim(session)
            self._touch(session)
            session.commit()
            logger.debug(f"Saved result {record.date}")
            return True
        except Exception as e:
            session.rollback()
            logger.error(f"Error saving result {record.date}: {e}")
            return False
        finally:
            session.close()

    def get_results_by_days(self, days):
        if days <= 0:
            return []
        session = self.session_factory()
        try:
            rows = session.query(DrawResult).order_by(
                DrawResult.draw_date.desc()
            ).limit(days).all()
            return [row.to_record() for row in rows]
        finally:
            session.close()

    def get_all_results(self):
        return self.get_results_by_days(self.max_results)

    def get_latest_result(self):
        results = self.get_results_by_days(1)
        return results[0] if results else None

    def get_result_count(self):
        session = self.session_factory()
        try:
            return session.query(DrawResult).count()
        finally:
            session.close()

    def find_by_date(self, date_str):
        try:
            iso_date = parse_date(date_str).isoformat()
        except (ValueError, OverflowError):
            return None
        session = self.session_factory()
        try:
            row = session.get(DrawResult, iso_date)
            return row.to_record() if row else None
        finally:
            session.close()

    def export_data(self):
        return build_export(self.get_all_results())

    def import_data(self, json_data):
        """Replace all stored results with the exported payload"""
        try:
            records = parse_import(json_data)
        except ValueError as e:
            logger.error(f"Error importing data: {e}")
            return False

        session = self.session_factory()
        try:
            session.query(DrawResult).delete()
            for record in records[:self.max_results]:
                session.add(DrawResult.from_record(record))
            self._touch(session)
            session.commit()
            logger.info(f"Imported {min(len(records), self.max_results)} results")
            return True
        except Exception as e:
            session.rollback()
            logger.error(f"Error importing data: {e}")
            return False
        finally:
            session.close()

    def clear_all(self):
        session = self.session_factory()
        try:
            session.query(DrawResult).delete()
            session.query(StoreMeta).filter_by(key=LAST_UPDATE_KEY).delete()
            session.commit()
            logger.info("All data cleared")
        except Exception as e:
            session.rollback()
            logger.error(f"Error clearing data: {e}")
        finally:
            session.close()

    def get_last_update(self):
        session = self.session_factory()
        try:
            meta = session.get(StoreMeta, LAST_UPDATE_KEY)
            return meta.value if meta else None
        finally:
            session.close()
