"""Pieces router — a student's repertoire."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from tempo.database import get_db
from tempo.middleware.auth import require_student
from tempo.models.piece import Piece
from tempo.models.user import User
from tempo.schemas.auth import MessageResponse
from tempo.schemas.practice import (
    PieceCreate,
    PieceListResponse,
    PieceResponse,
    PieceUpdate,
    piece_to_response,
)
from tempo.services.practice_service import load_piece

router = APIRouter(prefix="/api/pieces", tags=["pieces"])


def _owned_piece(db: Session, piece_id: str, student: User) -> Piece:
    piece = load_piece(db, piece_id)
    if piece.student_id != student.id:
        raise HTTPException(status_code=403, detail="Not your piece")
    return piece


def _piece_values(data: dict) -> dict:
    url = data.get("default_reference_video_url")
    if url is not None:
        data["default_reference_video_url"] = str(url)
    return data


@router.get("", response_model=PieceListResponse)
def list_pieces(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student),
):
    pieces = (
        db.query(Piece)
        .filter(Piece.student_id == current_user.id)
        .order_by(Piece.date_started.desc())
        .all()
    )
    return PieceListResponse(pieces=[piece_to_response(p) for p in pieces])


@router.post("", response_model=PieceResponse, status_code=201)
def create_piece(
    req: PieceCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student),
):
    piece = Piece(student_id=current_user.id, **_piece_values(req.model_dump()))
    db.add(piece)
    db.commit()
    db.refresh(piece)
    return piece_to_response(piece)


@router.patch("/{piece_id}", response_model=PieceResponse)
def update_piece(
    piece_id: str,
    req: PieceUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student),
):
    piece = _owned_piece(db, piece_id, current_user)
    values = _piece_values(req.model_dump(exclude_unset=True))
    if "name" in values and values["name"] is None:
        raise HTTPException(status_code=400, detail="Piece name cannot be empty")
    for field, value in values.items():
        setattr(piece, field, value)
    db.commit()
    db.refresh(piece)
    return piece_to_response(piece)


@router.delete("/{piece_id}", response_model=MessageResponse)
def delete_piece(
    piece_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student),
):
    piece = _owned_piece(db, piece_id, current_user)
    db.delete(piece)
    db.commit()
    return MessageResponse(message="Piece deleted successfully")
