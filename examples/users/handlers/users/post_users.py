"""POST /users: pretend to save a user."""

import datetime
import random

from bender import Handler


def _save(body: dict) -> dict:
    return {
        "id": random.randint(0, 999),
        **body,
        "createdAt": datetime.datetime.now(datetime.UTC),
    }


class PostUsers(Handler):
    async def setup(self) -> None:
        self.router.post("/", self.create)

    async def create(self, req, res) -> None:
        if not isinstance(req.body, dict) or not req.body:
            self.responser(res, 400, "Missing body")
            return
        result = await self.tryer(_save, req.body, code=201)
        self.responser(res, result.code, {"message": "User created successfully", "user": result.data})
