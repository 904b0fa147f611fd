"""Workspace document routes.

Endpoints:
    GET    /v1/files              List markdown documents
    GET    /v1/file?path=         Read a document
    POST   /v1/file               Create or overwrite a document
    PATCH  /v1/file               Rename a document
    DELETE /v1/file?path=         Delete a document
    GET    /v1/search?query=      Substring search with snippets
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from workbench.api.dependencies import get_document_store
from workbench.executor.document_store import FileDocumentStore, InvalidDocumentPath

logger = logging.getLogger(__name__)

router = APIRouter(tags=["documents"])


class DocumentWrite(BaseModel):
    path: str
    content: str = ""


class DocumentRename(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    path: str
    new_path: str = Field(alias="newPath")


@router.get("/files")
async def list_files(store: FileDocumentStore = Depends(get_document_store)):
    """List all markdown documents in the workspace."""
    store.ensure_root()
    return {"files": store.list_documents()}


@router.get("/file")
async def read_file(
    path: str = Query(..., description="Document path relative to workspace/docs"),
    store: FileDocumentStore = Depends(get_document_store),
):
    try:
        content = store.read(path)
    except InvalidDocumentPath as e:
        raise HTTPException(status_code=400, detail=str(e))
    if content is None:
        raise HTTPException(status_code=404, detail=f"Document not found: {path}")
    return {"path": path, "content": content}


@router.post("/file")
async def write_file(
    body: DocumentWrite,
    store: FileDocumentStore = Depends(get_document_store),
):
    path = body.path.strip()
    if not path:
        raise HTTPException(status_code=400, detail="Path is required.")
    try:
        store.write(path, body.content)
    except InvalidDocumentPath as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"path": path}


@router.patch("/file")
async def rename_file(
    body: DocumentRename,
    store: FileDocumentStore = Depends(get_document_store),
):
    path, new_path = body.path.strip(), body.new_path.strip()
    if not path or not new_path:
        raise HTTPException(status_code=400, detail="Path and newPath are required.")
    try:
        store.rename(path, new_path)
    except InvalidDocumentPath as e:
        raise HTTPException(status_code=400, detail=str(e))
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail=f"Document not found: {path}")
    return {"path": new_path}


@router.delete("/file")
async def delete_file(
    path: str = Query(...),
    store: FileDocumentStore = Depends(get_document_store),
):
    try:
        deleted = store.delete(path)
    except InvalidDocumentPath as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Document not found: {path}")
    return {"path": path}


@router.get("/search")
async def search_files(
    query: str = Query(""),
    store: FileDocumentStore = Depends(get_document_store),
):
    return {"results": store.search(query)}
