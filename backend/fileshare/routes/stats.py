"""Stats and data export/import routes."""
from fastapi import APIRouter, Body, Depends

from fileshare.dependencies import get_session
from fileshare.services import file_engine
from fileshare.services.session import Session

router = APIRouter(prefix="/api", tags=["stats"])


@router.get("/stats")
async def get_stats(session: Session = Depends(get_session)):
    """Aggregate file statistics."""
    stats = await file_engine.get_stats(session)
    return {"success": True, "stats": stats.model_dump()}


@router.get("/export")
async def export_data(session: Session = Depends(get_session)):
    """Export every file record and reaction."""
    snapshot = await file_engine.export_data(session)
    return {"success": True, "snapshot": snapshot.model_dump(mode="json")}


@router.post("/import")
async def import_data(data: dict = Body(...), session: Session = Depends(get_session)):
    """Replace all data with an exported snapshot."""
    snapshot = await file_engine.import_data(session, data)
    return {"success": True, "imported": len(snapshot.files)}


@router.get("/storage")
async def storage_info(session: Session = Depends(get_session)):
    """Usage of the local fallback store against its quota."""
    info = await file_engine.local_storage_info(session)
    return {"success": True, "storage": info.model_dump()}


@router.delete("/storage")
async def clear_storage(session: Session = Depends(get_session)):
    """Delete everything held in the local fallback store."""
    await file_engine.clear_local_data(session)
    return {"success": True, "cleared": True}
