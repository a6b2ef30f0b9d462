from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
from articlehub.database import get_db
from articlehub.schemas import StickerCreate, StickerResponse, StickerUpdate
from articlehub.services import sticker_service

router = APIRouter(prefix="/api/v1.0/stickers", tags=["stickers"])

@router.get("", response_model=list[StickerResponse])
async def list_stickers(db: AsyncSession = Depends(get_db)):
    return await sticker_service.get_stickers(db)

@router.get("/{sticker_id}", response_model=StickerResponse)
async def get_sticker(sticker_id: int, db: AsyncSession = Depends(get_db)):
    return await sticker_service.get_sticker(db, sticker_id)

@router.post("", status_code=201, response_model=StickerResponse)
async def create_sticker(data: StickerCreate, db: AsyncSession = Depends(get_db)):
    return await sticker_service.create_sticker(db, data)

@router.put("/{sticker_id}", response_model=StickerResponse)
async def update_sticker(sticker_id: int, data: StickerUpdate, db: AsyncSession = Depends(get_db)):
    return await sticker_service.update_sticker(db, sticker_id, data)

@router.delete("/{sticker_id}", status_code=204)
async def delete_sticker(sticker_id: int, db: AsyncSession = Depends(get_db)):
    await sticker_service.delete_sticker(db, sticker_id)
    return Response(status_code=204)
