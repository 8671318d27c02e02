"""
FastAPI backend for XSMB AI
Serves stored results, statistics and predictions; fetching runs in background
"""
from fastapi import FastAPI, BackgroundTasks, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool
from xsmb_ai.core.store import SqlResultStore
from xsmb_ai.core.predictor import PredictionEngine
from xsmb_ai.core.statistics import group_by_head_tail
from xsmb_ai.scraper.fetch_draws import fetch_and_save
from xsmb_ai.config import (
    logger, GAME_NAME, SCRAPING_ENABLED, DEFAULT_FETCH_LIMIT, DEFAULT_PREDICTION_LIMIT, DEFAULT_BASE_DAYS
)
import os

app = FastAPI(title=f"{GAME_NAME} AI Backend")

_store = None


def get_store():
    """Shared SQL store, created on first use"""
    global _store
    if _store is None:
        _store = SqlResultStore()
    return _store


def get_engine(store=Depends(get_store)):
    return PredictionEngine(store)


def _result_payload(record):
    payload = record.to_dict()
    payload['loto'] = group_by_head_tail(record)
    return payload


@app.get("/")
def health_check(store=Depends(get_store)):
    """Health check endpoint"""
    return {
        "status": "ok",
        "scraping_enabled": SCRAPING_ENABLED,
        "stored_results": store.get_result_count(),
        "last_update": store.get_last_update(),
        "environment": os.getenv("RAILWAY_ENVIRONMENT", "local")
    }


@app.post("/scrape")
def trigger_scrape(background_tasks: BackgroundTasks, limit_num: int = DEFAULT_FETCH_LIMIT,
                   store=Depends(get_store)):
    """Trigger fetching in background"""
    if not SCRAPING_ENABLED:
        return JSONResponse(
            status_code=403,
            content={"error": "Scraping disabled in this environment"}
        )

    background_tasks.add_task(fetch_and_save, store, limit_num)
    return {"message": f"Fetching started (last {limit_num} results)"}


@app.get("/predictions")
def get_predictions(method: str = "combined", limit: int = DEFAULT_PREDICTION_LIMIT,
                    base_days: int = DEFAULT_BASE_DAYS, engine=Depends(get_engine)):
    predictions = engine.generate_predictions(method, limit, base_days)
    if not predictions:
        return {"predictions": [], "message": "No data available"}
    return {"predictions": [p.to_dict() for p in predictions]}


@app.get("/statistics/frequency")
def get_frequency(days: int = 30, engine=Depends(get_engine)):
    return {"days": days, "frequency": engine.calculate_frequency(days)}


@app.get("/statistics/hot")
def get_hot_numbers(days: int = 7, limit: int = 15, engine=Depends(get_engine)):
    return {"days": days, "hot": engine.analyze_hot_numbers(days, limit)}


@app.get("/statistics/cold")
def get_cold_numbers(max_days: int = 60, engine=Depends(get_engine)):
    return {"max_days": max_days, "cold": engine.analyze_cold_numbers(max_days)}


@app.get("/statistics/pairs")
def get_pairs(days: int = 30, limit: int = 30, engine=Depends(get_engine)):
    return {"days": days, "pairs": engine.analyze_pairs(days, limit)}


@app.get("/statistics/loto")
def get_loto_patterns(days: int = 7, engine=Depends(get_engine)):
    return engine.analyze_loto_patterns(days)


@app.get("/statistics/summary")
def get_summary(engine=Depends(get_engine)):
    return engine.get_summary()


@app.get("/statistics/numbers")
def get_number_table(window: int = 30, engine=Depends(get_engine)):
    return {"window": window, "numbers": engine.get_number_summary(window)}


@app.get("/results/latest")
def get_latest_result(store=Depends(get_store)):
    record = store.get_latest_result()
    if record is None:
        raise HTTPException(status_code=404, detail="No data available")
    return _result_payload(record)


@app.get("/results/{day}/{month}/{year}")
def get_result_by_date(day: str, month: str, year: str, store=Depends(get_store)):
    record = store.find_by_date(f"{day}/{month}/{year}")
    if record is None:
        raise HTTPException(status_code=404, detail=f"No result for {day}/{month}/{year}")
    return _result_payload(record)


@app.delete("/results")
def clear_results(store=Depends(get_store)):
    store.clear_all()
    return {"cleared": True}


@app.get("/export")
def export_data(store=Depends(get_store)):
    return Response(content=store.export_data(), media_type="application/json")


@app.post("/import")
async def import_data(request: Request, store=Depends(get_store)):
    body = await request.body()
    imported = await run_in_threadpool(store.import_data, body.decode("utf-8", errors="replace"))
    if not imported:
        raise HTTPException(status_code=400, detail="Invalid data format")
    logger.info("Import via API complete")
    return {"imported": store.get_result_count()}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
