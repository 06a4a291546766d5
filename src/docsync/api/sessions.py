"""Document session endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ..exceptions import CommentNotFoundError, SaveError, UnsavedChangesError
from ..schemas.comment import CommentView
from ..schemas.session import (
    CommentBodyRequest,
    CommentCreatedResponse,
    ContentChangeRequest,
    CreateCommentRequest,
    OpenSessionRequest,
    ReactionRequest,
    ResolutionRequest,
    SessionResponse,
    SwitchBranchRequest,
)
from ..services.anchors import Selection
from ..services.document_session import DocumentSession
from ..services.sessions import SessionManager

router = APIRouter(prefix="/sessions", tags=["sessions"])


def get_manager(request: Request) -> SessionManager:
    """Dependency returning the application's session manager."""
    return request.app.state.sessions


def get_document_session(
    session_id: str,
    manager: SessionManager = Depends(get_manager),
) -> DocumentSession:
    session = manager.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def to_response(session: DocumentSession) -> SessionResponse:
    return SessionResponse(
        id=session.id,
        owner=session.state.owner,
        repo=session.state.repo,
        path=session.file_path,
        branch=session.state.current_branch,
        save_status=session.save_status.value,
        active_pr=session.active_pr,
        active_comment_count=session.active_comment_count,
        resolved_comment_count=session.resolved_comment_count,
        comments=session.comments,
    )


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def open_session(
    body: OpenSessionRequest,
    manager: SessionManager = Depends(get_manager),
) -> SessionResponse:
    """Open a document and start syncing its comments."""
    try:
        session = await manager.open_session(
            body.owner, body.repo, body.path, body.branch, body.user
        )
    except Exception as e:
        raise HTTPException(status_code=502, detail=f"Failed to load file: {e}")
    return to_response(session)


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session_view(
    session: DocumentSession = Depends(get_document_session),
) -> SessionResponse:
    """Current comments, counts, save status and PR context."""
    return to_response(session)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(
    session_id: str,
    manager: SessionManager = Depends(get_manager),
) -> None:
    if not await manager.close_session(session_id):
        raise HTTPException(status_code=404, detail="Session not found")


@router.post("/{session_id}/comments", response_model=CommentCreatedResponse)
async def add_comment(
    body: CreateCommentRequest,
    session: DocumentSession = Depends(get_document_session),
) -> CommentCreatedResponse:
    selection = None
    if body.selection_start is not None and body.selection_end is not None:
        selection = Selection(session.buffer.content, body.selection_start, body.selection_end)
    comment_id = await session.add_comment(body.content, selection, body.type)
    return CommentCreatedResponse(id=comment_id)


@router.post("/{session_id}/comments/{comment_id}/replies", response_model=CommentCreatedResponse)
async def reply_to_comment(
    comment_id: str,
    body: CommentBodyRequest,
    session: DocumentSession = Depends(get_document_session),
) -> CommentCreatedResponse:
    try:
        reply_id = await session.reply(comment_id, body.content)
    except CommentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return CommentCreatedResponse(id=reply_id)


@router.patch("/{session_id}/comments/{comment_id}")
async def edit_comment(
    comment_id: str,
    body: CommentBodyRequest,
    session: DocumentSession = Depends(get_document_session),
) -> dict:
    try:
        await session.edit_comment(comment_id, body.content)
    except CommentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"status": "ok"}


@router.delete("/{session_id}/comments/{comment_id}")
async def delete_comment(
    comment_id: str,
    session: DocumentSession = Depends(get_document_session),
) -> dict:
    try:
        await session.delete_comment(comment_id)
    except CommentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"status": "deleted"}


@router.post("/{session_id}/comments/{comment_id}/reactions")
async def toggle_reaction(
    comment_id: str,
    body: ReactionRequest,
    session: DocumentSession = Depends(get_document_session),
) -> dict:
    try:
        reactions = await session.toggle_reaction(comment_id, body.emoji)
    except CommentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"reactions": reactions}


@router.post("/{session_id}/comments/{comment_id}/resolution")
async def set_resolution(
    comment_id: str,
    body: ResolutionRequest,
    session: DocumentSession = Depends(get_document_session),
) -> dict:
    try:
        await session.set_resolution(comment_id, body.action)
    except CommentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"status": body.action}


@router.put("/{session_id}/content")
async def change_content(
    body: ContentChangeRequest,
    session: DocumentSession = Depends(get_document_session),
) -> dict:
    """Editor content changed; autosave is debounced."""
    scheduled = session.on_content_change(body.content)
    return {"autosave_scheduled": scheduled}


@router.post("/{session_id}/save")
async def save(
    session: DocumentSession = Depends(get_document_session),
) -> dict:
    try:
        result = await session.save()
    except SaveError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"status": result.value}


@router.post("/{session_id}/focus")
async def focus(
    session: DocumentSession = Depends(get_document_session),
) -> dict:
    """Window refocus: trigger an inbound sync."""
    return {"sync_started": session.on_focus() is not None}


@router.post("/{session_id}/hidden")
async def hidden(
    session: DocumentSession = Depends(get_document_session),
) -> dict:
    """View hidden: commit unsaved edits when commit-on-close is on."""
    return {"save_started": session.on_visibility_hidden() is not None}


@router.post("/{session_id}/branch", response_model=SessionResponse)
async def switch_branch(
    body: SwitchBranchRequest,
    session: DocumentSession = Depends(get_document_session),
) -> SessionResponse:
    try:
        session.switch_branch(body.branch, discard_changes=body.discard_changes)
    except UnsavedChangesError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return to_response(session)


@router.get("/{session_id}/comments/at", response_model=CommentView | None)
async def comment_at(
    text: str,
    offset: int | None = None,
    session: DocumentSession = Depends(get_document_session),
) -> CommentView | None:
    """The active comment a click on ``text`` (near ``offset``) belongs to."""
    return session.find_comment_for_click(text, offset)
