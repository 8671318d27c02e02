"""
Print today's statistics summary and ranked predictions

Usage:
    python generate_predictions.py
    python generate_predictions.py --method markov --limit 10 --days 30
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from xsmb_ai.core.store import SqlResultStore
from xsmb_ai.core.predictor import PredictionEngine
from xsmb_ai.config import (
    PREDICTION_METHODS, DEFAULT_PREDICTION_LIMIT, DEFAULT_BASE_DAYS, logger
)


def parse_args(argv):
    options = {
        'method': 'combined',
        'limit': DEFAULT_PREDICTION_LIMIT,
        'days': DEFAULT_BASE_DAYS,
    }
    args = list(argv)
    while args:
        flag = args.pop(0)
        if flag in ('--method', '--limit', '--days') and args:
            value = args.pop(0)
            key = flag[2:]
            options[key] = value if key == 'method' else int(value)
        else:
            logger.warning(f"Ignoring unknown argument: {flag}")
    return options


def main():
    options = parse_args(sys.argv[1:])

    store = SqlResultStore()
    engine = PredictionEngine(store)

    print("=" * 70)
    print("🎰 XSMB - DỰ ĐOÁN THỐNG KÊ")
    print("=" * 70)

    summary = engine.get_summary()
    print(f"\n📊 Tổng số ngày:   {summary['total_days']}")
    print(f"   Nóng nhất (7d): {summary['hottest_number']}")
    print(f"   Gan nhất (60d): {summary['coldest_number']} ({summary['coldest_days']} ngày)")
    print(f"   Cập nhật:       {store.get_last_update() or '--'}")

    if options['method'] not in PREDICTION_METHODS:
        print(f"\n⚠️  Unknown method '{options['method']}', using combined")

    predictions = engine.generate_predictions(options['method'], options['limit'], options['days'])

    if not predictions:
        print("\n⚠️  Chưa có dữ liệu. Chạy: python update_draws.py")
        print("=" * 70)
        return

    print("\n" + "=" * 70)
    print(f"🎯 TOP {len(predictions)} ({options['method']}, {options['days']} ngày)")
    print("=" * 70)

    for rank, p in enumerate(predictions, 1):
        print(f"  {rank:2d}. {p.number}  {p.confidence:5.1f}%  [{p.confidence_level:6s}]  {p.reason}")

    print("\n  ⚠️  Thống kê lịch sử - không đảm bảo kết quả.")
    print("=" * 70)


if __name__ == "__main__":
    main()
