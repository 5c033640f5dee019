"""Actor 模型 -- 边界层已验证的请求者身份"""

from pydantic import BaseModel, Field

from .enums import Role


class Actor(BaseModel):
    """请求者身份与角色"""

    actor_id: str = Field(description="用户 ID")
    role: Role = Field(description="角色")
