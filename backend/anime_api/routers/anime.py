from fastapi import APIRouter, Depends, Response, status

from ..dependencies import get_anime_service
from ..schemas.anime import AnimeRead, AnimeWrite
from ..services.anime_service import AnimeService

router = APIRouter(prefix="/anime", tags=["anime"])


@router.get("", response_model=list[AnimeRead])
@router.get("/", response_model=list[AnimeRead], include_in_schema=False)
async def list_anime(service: AnimeService = Depends(get_anime_service)) -> list[AnimeRead]:
    animes = await service.find_all()
    return [AnimeRead.model_validate(anime) for anime in animes]


@router.get("/{anime_id}", response_model=AnimeRead)
async def get_anime(
    anime_id: int,
    service: AnimeService = Depends(get_anime_service),
) -> AnimeRead:
    return AnimeRead.model_validate(await service.find_by_id(anime_id))


@router.post("", response_model=AnimeRead, status_code=status.HTTP_201_CREATED)
@router.post(
    "/", response_model=AnimeRead, status_code=status.HTTP_201_CREATED, include_in_schema=False
)
async def create_anime(
    payload: AnimeWrite,
    service: AnimeService = Depends(get_anime_service),
) -> AnimeRead:
    return AnimeRead.model_validate(await service.save(payload.to_domain()))


@router.post("/batch", response_model=list[AnimeRead], status_code=status.HTTP_201_CREATED)
async def create_anime_batch(
    payload: list[AnimeWrite],
    service: AnimeService = Depends(get_anime_service),
) -> list[AnimeRead]:
    animes = await service.save_all([item.to_domain() for item in payload])
    return [AnimeRead.model_validate(anime) for anime in animes]


@router.put("/{anime_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_anime(
    anime_id: int,
    payload: AnimeWrite,
    service: AnimeService = Depends(get_anime_service),
) -> Response:
    await service.update(anime_id, payload.to_domain())
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{anime_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_anime(
    anime_id: int,
    service: AnimeService = Depends(get_anime_service),
) -> Response:
    await service.delete(anime_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
