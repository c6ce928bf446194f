import pytest
from app.core.exceptions import NotFoundError, UnauthorizedError, ValidationError
from app.models.shared.enums import RequestType
from app.schemas.workflow.request_schema import RequestCreate, RequestResponse
from app.services.workflow.comment_service import CommentService, visible_comments
from app.services.workflow.workflow_service import RequestWorkflowService


@pytest.fixture
async def concept_note(session, notifier, policy, users):
    service = RequestWorkflowService(session, notifier, policy)
    return await service.create_request(
        RequestType.CONCEPT_NOTE,
        RequestCreate(title="Nutrition survey", reviewed_by=users["reviewer"].id),
        users["staff"],
        submit=True,
    )


@pytest.fixture
def comment_service(session):
    return CommentService(session)


async def test_comments_are_newest_first(comment_service, concept_note, users):
    await comment_service.add_comment(concept_note, users["staff"], "Attached the budget")
    await comment_service.add_comment(concept_note, users["reviewer"], "  Looking now  ")

    assert [c.text for c in visible_comments(concept_note)] == ["Looking now", "Attached the budget"]
    assert visible_comments(concept_note)[0].user_id == users["reviewer"].id


async def test_empty_comment_rejected(comment_service, concept_note, users):
    with pytest.raises(ValidationError):
        await comment_service.add_comment(concept_note, users["staff"], "   ")


async def test_unrelated_user_cannot_comment(comment_service, concept_note, users):
    with pytest.raises(UnauthorizedError):
        await comment_service.add_comment(concept_note, users["outsider"], "Hello")

    await comment_service.add_comment(concept_note, users["admin"], "Escalating")
    assert len(visible_comments(concept_note)) == 1


async def test_edit_marks_comment(comment_service, concept_note, users):
    comment = await comment_service.add_comment(concept_note, users["staff"], "Budget is 1.2m")

    edited = await comment_service.update_comment(concept_note, comment.id, users["staff"], "Budget is 1.5m")

    assert edited.text == "Budget is 1.5m"
    assert edited.is_edited is True


async def test_only_author_edits_or_deletes(comment_service, concept_note, users):
    comment = await comment_service.add_comment(concept_note, users["staff"], "Mine")

    with pytest.raises(UnauthorizedError):
        await comment_service.update_comment(concept_note, comment.id, users["reviewer"], "Theirs")
    with pytest.raises(UnauthorizedError):
        await comment_service.delete_comment(concept_note, comment.id, users["reviewer"])


async def test_deleted_comment_is_hidden_but_kept(comment_service, concept_note, users):
    keep = await comment_service.add_comment(concept_note, users["staff"], "Keep me")
    gone = await comment_service.add_comment(concept_note, users["staff"], "Remove me")

    await comment_service.delete_comment(concept_note, gone.id, users["staff"])

    assert gone in concept_note.comments
    assert gone.is_deleted is True
    response = RequestResponse.model_validate(concept_note)
    assert [c.id for c in response.comments] == [keep.id]

    with pytest.raises(NotFoundError):
        await comment_service.update_comment(concept_note, gone.id, users["staff"], "Back again")
