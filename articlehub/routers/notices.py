from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
from articlehub.database import get_db
from articlehub.schemas import NoticeCreate, NoticeResponse, NoticeUpdate
from articlehub.services import notice_service

router = APIRouter(prefix="/api/v1.0/notices", tags=["notices"])

@router.get("", response_model=list[NoticeResponse])
async def list_notices(db: AsyncSession = Depends(get_db)):
    return await notice_service.get_notices(db)

@router.get("/{notice_id}", response_model=NoticeResponse)
async def get_notice(notice_id: int, db: AsyncSession = Depends(get_db)):
    return await notice_service.get_notice(db, notice_id)

@router.post("", status_code=201, response_model=NoticeResponse)
async def create_notice(data: NoticeCreate, db: AsyncSession = Depends(get_db)):
    return await notice_service.create_notice(db, data)

@router.put("/{notice_id}", response_model=NoticeResponse)
async def update_notice(notice_id: int, data: NoticeUpdate, db: AsyncSession = Depends(get_db)):
    return await notice_service.update_notice(db, notice_id, data)

@router.delete("/{notice_id}", status_code=204)
async def delete_notice(notice_id: int, db: AsyncSession = Depends(get_db)):
    await notice_service.delete_notice(db, notice_id)
    return Response(status_code=204)
