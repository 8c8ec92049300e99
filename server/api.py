"""FastAPI server exposing the wardrobe record store, sync and scoring endpoints."""

from __future__ import annotations

from datetime import date
from typing import Any, Callable, Dict, List, Optional, Type

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from memory.cloud_sync import SyncResult
from models.errors import PersistenceFailure, ValidationFailure
from models.records import ClothingItem, Outfit, Trip, WearLog, WishlistItem, generate_id
from wardrobe_app.app import WardrobeApp


class SignInRequest(BaseModel):
    """Request payload for signing a user in."""

    user_id: str = Field(..., min_length=1, description="Identity supplied by the auth provider")


class SuggestedOutfitRequest(BaseModel):
    """Request payload for saving a blend suggestion as an outfit."""

    name: str | None = Field(None, description="Optional outfit name")


def _record(record_cls: Type, payload: Dict[str, Any]) -> Any:
    data = dict(payload)
    if not data.get("id"):
        data["id"] = generate_id()
    return record_cls.from_dict(data)


def _not_found(kind: str, record_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{kind} '{record_id}' not found")


def _sync_response(result: SyncResult) -> dict:
    if result.rejected:
        raise HTTPException(status_code=409, detail=result.error or "sync already in progress")
    if not result.success:
        raise HTTPException(status_code=502, detail=result.error or "sync failed")
    return result.to_dict()


def create_app(wardrobe_app: WardrobeApp | None = None, factory: Callable[[], WardrobeApp] = WardrobeApp) -> FastAPI:
    """Build the HTTP app; the wardrobe app is created on first use if not given."""

    app = FastAPI(title="Wardrobe Tracker", version="0.1.0")
    app.state.wardrobe = wardrobe_app

    def get_wardrobe(request: Request) -> WardrobeApp:
        if request.app.state.wardrobe is None:
            request.app.state.wardrobe = factory()
        return request.app.state.wardrobe

    @app.exception_handler(ValidationFailure)
    async def _validation_failure(request: Request, exc: ValidationFailure) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc), "field": exc.field})

    @app.exception_handler(PersistenceFailure)
    async def _persistence_failure(request: Request, exc: PersistenceFailure) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": "The change could not be recorded"})

    @app.get("/healthz")
    def healthcheck(wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        """Lightweight readiness probe."""

        return {
            "status": "ok",
            "service": "wardrobe-tracker",
            "environment": wardrobe.config.environment or "local",
            "storage": wardrobe.config.storage_backend,
        }

    # ---------------------------------------------------------------- items

    @app.get("/items")
    def list_items(
        category: Optional[str] = None,
        type: Optional[str] = None,
        occasion: Optional[str] = None,
        season: Optional[str] = None,
        brand: Optional[str] = None,
        wardrobe: WardrobeApp = Depends(get_wardrobe),
    ) -> List[dict]:
        if any((category, type, occasion, season, brand)):
            items = wardrobe.store.get_items_by_filter(category, type, occasion, season, brand)
        else:
            items = wardrobe.store.get_clothing_items()
        return [item.to_dict() for item in items]

    @app.post("/items")
    def save_item(payload: Dict[str, Any] = Body(...), wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        return wardrobe.store.save_clothing_item(_record(ClothingItem, payload)).to_dict()

    @app.get("/items/{item_id}")
    def get_item(item_id: str, wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        item = wardrobe.store.get_clothing_item(item_id)
        if item is None:
            raise _not_found("item", item_id)
        return item.to_dict()

    @app.delete("/items/{item_id}")
    def delete_item(item_id: str, wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        if not wardrobe.store.delete_clothing_item(item_id):
            raise _not_found("item", item_id)
        return {"deleted": item_id}

    @app.post("/items/{item_id}/wear")
    def wear_item(item_id: str, wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        if not wardrobe.store.update_item_wear_count(item_id):
            raise _not_found("item", item_id)
        return wardrobe.store.get_clothing_item(item_id).to_dict()

    # -------------------------------------------------------------- outfits

    @app.get("/outfits")
    def list_outfits(wardrobe: WardrobeApp = Depends(get_wardrobe)) -> List[dict]:
        return [outfit.to_dict() for outfit in wardrobe.store.get_outfits()]

    @app.post("/outfits")
    def save_outfit(payload: Dict[str, Any] = Body(...), wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        return wardrobe.store.save_outfit(_record(Outfit, payload)).to_dict()

    @app.delete("/outfits/{outfit_id}")
    def delete_outfit(outfit_id: str, wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        if not wardrobe.store.delete_outfit(outfit_id):
            raise _not_found("outfit", outfit_id)
        return {"deleted": outfit_id}

    # ------------------------------------------------------------ wear logs

    @app.get("/wear-logs")
    def list_wear_logs(day: Optional[date] = None, wardrobe: WardrobeApp = Depends(get_wardrobe)) -> List[dict]:
        logs = wardrobe.store.get_wear_logs_for_date(day) if day else wardrobe.store.get_wear_logs()
        return [log.to_dict() for log in logs]

    @app.post("/wear-logs")
    def save_wear_log(payload: Dict[str, Any] = Body(...), wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        return wardrobe.store.save_wear_log(_record(WearLog, payload)).to_dict()

    @app.get("/wear-logs/{log_id}/items")
    def wear_log_items(log_id: str, wardrobe: WardrobeApp = Depends(get_wardrobe)) -> List[dict]:
        log = next((entry for entry in wardrobe.store.get_wear_logs() if entry.id == log_id), None)
        if log is None:
            raise _not_found("wear log", log_id)
        return [item.to_dict() for item in wardrobe.store.get_worn_items(log)]

    @app.delete("/wear-logs/{log_id}")
    def delete_wear_log(log_id: str, wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        if not wardrobe.store.delete_wear_log(log_id):
            raise _not_found("wear log", log_id)
        return {"deleted": log_id}

    # ------------------------------------------------------------- wishlist

    @app.get("/wishlist")
    def list_wishlist(wardrobe: WardrobeApp = Depends(get_wardrobe)) -> List[dict]:
        return [item.to_dict() for item in wardrobe.store.get_wishlist_items()]

    @app.post("/wishlist")
    def save_wishlist_item(payload: Dict[str, Any] = Body(...), wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        return wardrobe.store.save_wishlist_item(_record(WishlistItem, payload)).to_dict()

    @app.delete("/wishlist/{item_id}")
    def delete_wishlist_item(item_id: str, wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        if not wardrobe.store.delete_wishlist_item(item_id):
            raise _not_found("wishlist item", item_id)
        return {"deleted": item_id}

    @app.post("/wishlist/{item_id}/priority")
    def toggle_priority(item_id: str, wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        item = wardrobe.store.toggle_wishlist_priority(item_id)
        if item is None:
            raise _not_found("wishlist item", item_id)
        return item.to_dict()

    @app.get("/wishlist/{item_id}/blend")
    def wishlist_blend(item_id: str, wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        blend = wardrobe.wishlist_blend(item_id)
        if blend is None:
            raise _not_found("wishlist item", item_id)
        return blend.to_dict()

    @app.post("/wishlist/{item_id}/blend/outfits/{index}")
    def save_blend_outfit(
        item_id: str,
        index: int,
        request: SuggestedOutfitRequest | None = None,
        wardrobe: WardrobeApp = Depends(get_wardrobe),
    ) -> dict:
        blend = wardrobe.wishlist_blend(item_id)
        if blend is None:
            raise _not_found("wishlist item", item_id)
        if not 0 <= index < len(blend.outfit_suggestions):
            raise _not_found("outfit suggestion", str(index))
        return wardrobe.save_suggested_outfit(blend.outfit_suggestions[index], name=request.name if request else None).to_dict()

    # ---------------------------------------------------------------- trips

    @app.get("/trips")
    def list_trips(wardrobe: WardrobeApp = Depends(get_wardrobe)) -> List[dict]:
        return [trip.to_dict() for trip in wardrobe.store.get_trips()]

    @app.post("/trips")
    def save_trip(payload: Dict[str, Any] = Body(...), wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        return wardrobe.store.save_trip(_record(Trip, payload)).to_dict()

    @app.delete("/trips/{trip_id}")
    def delete_trip(trip_id: str, wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        if not wardrobe.store.delete_trip(trip_id):
            raise _not_found("trip", trip_id)
        return {"deleted": trip_id}

    @app.get("/trips/{trip_id}/packing-list")
    def packing_list(trip_id: str, wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        packing = wardrobe.packing_list_for_trip(trip_id)
        if packing is None:
            raise _not_found("trip", trip_id)
        return packing.to_dict()

    @app.post("/packing-lists/{list_id}/items/{item_id}/toggle")
    def toggle_packed(list_id: str, item_id: str, wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        item = wardrobe.store.toggle_packing_item_packed(list_id, item_id)
        if item is None:
            raise _not_found("packing item", item_id)
        return item.to_dict()

    # ------------------------------------------------------------ analytics

    @app.get("/stats")
    def closet_stats(wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        return wardrobe.closet_stats().to_dict()

    @app.get("/analytics")
    def analytics(wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        return wardrobe.analytics_summary().to_dict()

    @app.get("/streak")
    def streak(today: Optional[date] = None, wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        result = wardrobe.streak(today=today)
        return {"current": result.current, "longest": result.longest}

    # ----------------------------------------------------------------- sync

    @app.post("/sign-in")
    def sign_in(request: SignInRequest, wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        return wardrobe.sign_in(request.user_id)

    @app.get("/sync/state")
    def sync_state(wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        return wardrobe.sync_state()

    @app.post("/sync/{user_id}")
    def full_sync(user_id: str, wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        return _sync_response(wardrobe.sync_now(user_id))

    @app.post("/sync/{user_id}/migrate")
    def migrate(user_id: str, wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        return _sync_response(wardrobe.migrate_local_storage(user_id))

    # ---------------------------------------------------------- maintenance

    @app.post("/maintenance/cleanup-images")
    def cleanup_images(wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        return {"fixed": wardrobe.image_checker.cleanup_broken_images()}

    @app.post("/maintenance/reconcile-wear-counts")
    def reconcile_wear_counts(wardrobe: WardrobeApp = Depends(get_wardrobe)) -> dict:
        return {"fixed": wardrobe.store.reconcile_wear_counts()}

    return app


app = create_app()


def get_app() -> FastAPI:
    """Expose the FastAPI instance for ASGI servers."""

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server.api:app", host="0.0.0.0", port=8080, reload=False)
