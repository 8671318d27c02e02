"""
XSMB result fetcher - xoso188.net history API
- Session with retry on 429/5xx
- Every failure is reported in the returned dict, never raised
"""
import json
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from xsmb_ai.config import (
    API_ENDPOINT, GAME_CODE, SCRAPING_ENABLED, MAX_RETRIES, TIMEOUT_SECONDS,
    DEFAULT_FETCH_LIMIT, PRIZE_TIERS, logger
)
from xsmb_ai.core.records import DrawRecord, InvalidRecordError

HEADERS = {
    "Accept": "application/json",
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
}

# Tiers holding a single value; the rest are comma separated
SINGLE_VALUE_TIERS = 2


def _get_session():
    """Create a requests session with retry logic"""
    session = requests.Session()
    session.headers.update(HEADERS)

    retry = Retry(
        total=MAX_RETRIES,
        backoff_factor=2,
        status_forcelist=[429, 500, 502, 503, 504],
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)

    return session


def parse_issue(issue):
    """
    Convert one API issue into a DrawRecord.

    issue['detail'] is a JSON array of eight strings in prize order; the
    special and first prizes hold one value, the others a comma separated
    list. Returns None if the issue cannot be parsed.
    """
    try:
        detail = json.loads(issue['detail'])
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Error parsing detail for {issue.get('turnNum') if isinstance(issue, dict) else issue}: {e}")
        return None

    if not isinstance(detail, list):
        logger.warning(f"Unexpected detail format for {issue.get('turnNum')}")
        return None

    ket_qua = {}
    for idx, tier in enumerate(PRIZE_TIERS):
        value = detail[idx] if idx < len(detail) else None
        if not value:
            ket_qua[tier] = []
        elif idx < SINGLE_VALUE_TIERS:
            ket_qua[tier] = [str(value)]
        else:
            ket_qua[tier] = str(value).split(',')

    try:
        return DrawRecord.from_dict({
            'ngay': issue.get('turnNum'),
            'ket_qua': ket_qua,
            'openTime': issue.get('openTime'),
            'openNum': issue.get('openNum'),
        })
    except InvalidRecordError as e:
        logger.warning(f"Skipping issue: {e}")
        return None


def fetch_latest(limit_num=DEFAULT_FETCH_LIMIT, session=None):
    """
    Fetch the most recent results.

    Returns:
        {'success': True, 'data': [DrawRecord], 'metadata': {...}} or
        {'success': False, 'error': str}
    """
    if not SCRAPING_ENABLED:
        logger.warning("Scraping is disabled in this environment")
        return {'success': False, 'error': 'Scraping disabled'}

    if session is None:
        session = _get_session()

    params = {'limitNum': limit_num, 'gameCode': GAME_CODE}

    try:
        logger.debug(f"Fetching {API_ENDPOINT} {params}")
        response = session.get(API_ENDPOINT, params=params, timeout=TIMEOUT_SECONDS)
        response.raise_for_status()
        data = response.json()
    except requests.exceptions.RequestException as e:
        logger.error(f"API fetch error: {e}")
        return {'success': False, 'error': str(e)}
    except ValueError as e:
        logger.error(f"API returned invalid JSON: {e}")
        return {'success': False, 'error': 'Invalid response format'}

    payload = None
    if isinstance(data, dict) and data.get('success'):
        payload = data.get('t')
    if not isinstance(payload, dict) or not isinstance(payload.get('issueList'), list):
        logger.error("API response missing issue list")
        return {'success': False, 'error': 'Invalid response format'}

    results = [r for r in (parse_issue(issue) for issue in payload['issueList']) if r is not None]
    logger.info(f"Fetched {len(results)} results from API")

    return {
        'success': True,
        'data': results,
        'metadata': {
            'name': payload.get('name'),
            'code': payload.get('code'),
            'server_time': payload.get('serverTime'),
        },
    }


def fetch_and_save(store, limit_num=DEFAULT_FETCH_LIMIT, session=None):
    """Fetch recent results and save every one into the store"""
    result = fetch_latest(limit_num, session=session)

    if not result['success']:
        return {
            'success': False,
            'saved': 0,
            'error': result['error'],
            'message': 'Could not fetch data from API',
        }

    saved_count = sum(1 for record in result['data'] if store.save_result(record))
    latest = result['data'][0].to_dict() if result['data'] else None

    logger.info(f"Fetch complete: {saved_count} results saved")
    return {
        'success': saved_count > 0,
        'saved': saved_count,
        'latest': latest,
        'message': f"Updated {saved_count} results",
        'metadata': result['metadata'],
    }


# DO NOT auto-execute - must be called explicitly
if __name__ == "__main__":
    from xsmb_ai.core.store import SqlResultStore

    logger.info("Manual fetch triggered")
    fetch_and_save(SqlResultStore(), limit_num=7)
