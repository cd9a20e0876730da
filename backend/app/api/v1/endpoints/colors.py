from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db
from backend.app.schemas.catalog import ColorIn
from backend.services.catalog import add_color, delete_color, load_vocabulary

router = APIRouter(prefix="/colors")


@router.get("", response_model=list[ColorIn])
def list_colors(db: Session = Depends(get_db)):
    return [{"name": c.name, "hex": c.hex} for c in load_vocabulary(db)]


@router.post("", response_model=ColorIn)
def create_color(payload: ColorIn, db: Session = Depends(get_db)):
    color = add_color(db, payload.name, payload.hex)
    db.commit()
    return {"name": color.name, "hex": color.hex}


@router.delete("/{name}", status_code=204)
def remove_color(name: str, db: Session = Depends(get_db)):
    if not delete_color(db, name):
        raise HTTPException(status_code=404, detail=f"Color {name} not found")
    db.commit()
