"""User group (visibility rule set) routes."""

from fastapi import APIRouter, Depends, HTTPException

from ..deps import current_user_id
from ..schemas import UserGroupCreate, UserGroupUpdate, serialize_group, serialize_user
from ...db import db
from ...errors import TeamCalendarError
from ...services import UserGroupService

router = APIRouter(tags=["user-groups"])


@router.get("/teams/{team_id}/user-groups")
def list_groups(team_id: str, user_id: str = Depends(current_user_id)):
    try:
        with db.session() as session:
            return [serialize_group(g) for g in UserGroupService(session).list_groups(team_id, user_id)]
    except TeamCalendarError:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")


@router.post("/teams/{team_id}/user-groups", status_code=201)
def create_group(team_id: str, body: UserGroupCreate, user_id: str = Depends(current_user_id)):
    try:
        with db.session() as session:
            group = UserGroupService(session).create(
                team_id, user_id, body.name, body.is_public, body.visibility_rules
            )
            return serialize_group(group)
    except TeamCalendarError:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")


@router.get("/teams/{team_id}/user-groups/{group_id}")
def get_group(team_id: str, group_id: str, user_id: str = Depends(current_user_id)):
    try:
        with db.session() as session:
            return serialize_group(UserGroupService(session).get(team_id, group_id, user_id))
    except TeamCalendarError:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")


@router.patch("/teams/{team_id}/user-groups/{group_id}")
def update_group(team_id: str, group_id: str, body: UserGroupUpdate,
                 user_id: str = Depends(current_user_id)):
    data = body.model_dump(exclude_unset=True)
    changes = {}
    if 'name' in data:
        changes['name'] = data['name']
    if 'is_public' in data:
        changes['is_public'] = data['is_public']
    if 'visibility_rules' in data:
        changes['rules'] = data['visibility_rules']
    try:
        with db.session() as session:
            group = UserGroupService(session).update(team_id, group_id, user_id, **changes)
            return serialize_group(group)
    except TeamCalendarError:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")


@router.delete("/teams/{team_id}/user-groups/{group_id}")
def delete_group(team_id: str, group_id: str, user_id: str = Depends(current_user_id)):
    try:
        with db.session() as session:
            UserGroupService(session).delete(team_id, group_id, user_id)
    except TeamCalendarError:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")
    return {"status": "success"}


@router.get("/teams/{team_id}/user-groups/{group_id}/members")
def group_members(team_id: str, group_id: str, user_id: str = Depends(current_user_id)):
    """Active team members the group's rules currently select."""
    try:
        with db.session() as session:
            users = UserGroupService(session).members(team_id, group_id, user_id)
            return [serialize_user(user) for user in users]
    except TeamCalendarError:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")
