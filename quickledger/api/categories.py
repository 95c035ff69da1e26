from fastapi import APIRouter, HTTPException, status

from ..schemas import CategoryCreate, CategoryRead, SynonymCreate
from ..services import add_category_synonym, create_category, list_categories
from ..services.registry import CategoryExistsError, CategoryNotFoundError
from .dependencies import LedgerPath, SessionDep

router = APIRouter()


@router.get("/{ledger}/categories", response_model=list[CategoryRead])
async def list_categories_endpoint(ledger: LedgerPath, session: SessionDep) -> list[CategoryRead]:
    categories = await list_categories(session, ledger)
    return [CategoryRead.model_validate(category) for category in categories]


@router.post("/{ledger}/categories", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
async def create_category_endpoint(
    ledger: LedgerPath,
    payload: CategoryCreate,
    session: SessionDep,
) -> CategoryRead:
    try:
        category = await create_category(session, ledger, payload)
    except CategoryExistsError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return CategoryRead.model_validate(category)


@router.post("/{ledger}/categories/{code}/synonyms", response_model=CategoryRead)
async def add_category_synonym_endpoint(
    ledger: LedgerPath,
    code: str,
    payload: SynonymCreate,
    session: SessionDep,
) -> CategoryRead:
    try:
        category = await add_category_synonym(session, ledger, code, payload.phrase)
    except CategoryNotFoundError:
        raise HTTPException(status_code=404, detail="Category not found")
    return CategoryRead.model_validate(category)
