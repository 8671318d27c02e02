"""
Update the local result store.

Usage:
    python update_draws.py                  # fetch latest results from the API
    python update_draws.py --limit 60
    python update_draws.py --export backup.json
    python update_draws.py --import backup.json
    python update_draws.py --clear
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from xsmb_ai.core.store import SqlResultStore
from xsmb_ai.scraper.fetch_draws import fetch_and_save
from xsmb_ai.core.records import extract_numbers
from xsmb_ai.config import DEFAULT_FETCH_LIMIT, logger


def show_latest(store):
    """Show latest results in the store"""
    results = store.get_results_by_days(5)
    print(f"\n📊 Total results: {store.get_result_count()}")
    print("📅 Latest 5:")
    for r in results:
        special = r.prize_tiers.get('giai-db') or ('--',)
        print(f"   {r.date}: ĐB {special[0]} | {' '.join(extract_numbers(r))}")


def export_to(store, path):
    Path(path).write_text(store.export_data(), encoding='utf-8')
    print(f"✅ Exported {store.get_result_count()} results to {path}")


def import_from(store, path):
    try:
        text = Path(path).read_text(encoding='utf-8')
    except OSError as e:
        logger.error(f"Cannot read {path}: {e}")
        print(f"❌ Cannot read {path}")
        return False

    if store.import_data(text):
        print(f"✅ Imported {store.get_result_count()} results")
        return True
    print("❌ Invalid data format")
    return False


def main():
    store = SqlResultStore()
    args = sys.argv[1:]

    print("=" * 60)
    print("🇻🇳 XSMB - UPDATE RESULTS")
    print("=" * 60)

    if len(args) >= 2 and args[0] == '--export':
        export_to(store, args[1])
        return
    if len(args) >= 2 and args[0] == '--import':
        import_from(store, args[1])
        show_latest(store)
        return
    if args and args[0] == '--clear':
        answer = input("Delete ALL stored results? (y/n): ").strip().lower()
        if answer == 'y':
            store.clear_all()
            print("🗑️  All data cleared")
        return

    limit = DEFAULT_FETCH_LIMIT
    if len(args) >= 2 and args[0] == '--limit':
        limit = int(args[1])

    print(f"\n🔄 Fetching last {limit} results...")
    result = fetch_and_save(store, limit_num=limit)
    if result['success']:
        print(f"✅ {result['message']}")
    else:
        print(f"⚠️  {result.get('error') or result['message']}")

    show_latest(store)
    print("\n" + "=" * 60)
    print("Done!")
    print("=" * 60)


if __name__ == "__main__":
    main()
