"""
Account methods: login, accounts.login/logout, user.create/update/changePassword.

Handlers stay thin: unpack params, call the service, shape the result.
"""

from app.exceptions import NotAuthorizedError
from app.methods.registry import MethodContext, MethodRegistry
from app.schemas.common import EmptyParams
from app.schemas.user import (
    ChangePasswordParams,
    CreateUserParams,
    CreateUserResult,
    IdentityResult,
    LoginParams,
    SuccessResult,
    TokenLoginResult,
    UpdateUserParams,
)
from app.services.account_service import account_service
from app.services.session_service import session_service


async def login(params: LoginParams, ctx: MethodContext) -> IdentityResult:
    return await session_service.login(ctx.db, params.username, params.password)


async def accounts_login(params: LoginParams, ctx: MethodContext) -> TokenLoginResult:
    return await session_service.accounts_login(ctx.db, params.username, params.password)


async def accounts_logout(params: EmptyParams, ctx: MethodContext) -> SuccessResult:
    await account_service.revoke_login_token(ctx.db, ctx.token)
    return SuccessResult()


async def user_create(params: CreateUserParams, ctx: MethodContext) -> CreateUserResult:
    user_id = await account_service.create_user(
        ctx.db, params.username, params.password, params.profile
    )
    return CreateUserResult(user_id=user_id)


async def user_update(params: UpdateUserParams, ctx: MethodContext) -> bool:
    # Users may only edit their own profile
    if ctx.user_id != params.user_id:
        raise NotAuthorizedError(
            message="You are not authorized to update this user profile",
            context={"target_user_id": str(params.user_id)},
        )
    if params.profile is not None:
        await account_service.update_profile(ctx.db, ctx.user, params.profile)
    return True


async def user_change_password(params: ChangePasswordParams, ctx: MethodContext) -> bool:
    await account_service.change_password(
        ctx.db, ctx.user, params.old_password, params.new_password
    )
    return True


def register(registry: MethodRegistry) -> None:
    registry.register("login", LoginParams, login)
    registry.register("accounts.login", LoginParams, accounts_login)
    registry.register("accounts.logout", EmptyParams, accounts_logout, requires_auth=True)
    registry.register("user.create", CreateUserParams, user_create)
    registry.register("user.update", UpdateUserParams, user_update, requires_auth=True)
    registry.register(
        "user.changePassword", ChangePasswordParams, user_change_password, requires_auth=True
    )
