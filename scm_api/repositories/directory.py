"""Read-side repositories for suppliers, projects and users."""


from scm_api.domain.directory import Project, Supplier, User
from scm_api.repositories.base import BaseRepository


class SupplierRepository(BaseRepository[Supplier]):
    model = Supplier


class ProjectRepository(BaseRepository[Project]):
    model = Project


class UserRepository(BaseRepository[User]):
    model = User
