"""GET /users and GET /users/{id}."""

from bender import Handler

USERS = (
    {"id": 1, "name": "Alice", "role": "admin"},
    {"id": 2, "name": "Bob", "role": "user"},
    {"id": 3, "name": "Charlie", "role": "guest"},
)


class GetUsers(Handler):
    async def setup(self) -> None:
        self.router.get("/", self.index)
        self.router.get("/{id}", self.show)

    def index(self, req, res) -> None:
        self.responser(res, 200, list(USERS))

    def show(self, req, res) -> None:
        try:
            user_id = int(req.params["id"])
        except ValueError:
            self.responser(res, 400, "Invalid ID")
            return
        self.responser(res, 200, {"id": user_id, "name": f"User {user_id}", "role": "user"})
