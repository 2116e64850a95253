"""
Map backup category names to categories of the target installation.
"""

from typing import Optional

from .database_storage import DatabaseStorage
from .models import CategoryResolution, CategoryStatus


class CategoryResolver:
    """
    Resolves category names, creating missing categories at the top level.

    Lookup and creation are two separate statements with nothing
    serialising them, so resolutions must not run concurrently.
    """

    def __init__(
        self,
        storage: DatabaseStorage,
        default_category_id: Optional[int] = None,
        default_category_name: str = "Miscellaneous"
    ):
        """
        Args:
            storage: Target data store
            default_category_id: Category for backups without a category name.
                                 If None, the store's default category is used.
            default_category_name: Name used if the store has no category at all
        """
        self.storage = storage
        self.default_category_id = default_category_id
        self.default_category_name = default_category_name

    def _default_category(self) -> int:
        if self.default_category_id is None:
            self.default_category_id = self.storage.get_default_category_id(self.default_category_name)
        return self.default_category_id

    def resolve(self, name: str) -> CategoryResolution:
        """
        Get the id of the category called *name*, creating it if absent.

        Args:
            name: Category name from the backup, may be empty

        Returns:
            CategoryResolution with the id and whether it was found,
            created or the default was used
        """
        if not name:
            return CategoryResolution(self._default_category(), CategoryStatus.USED_DEFAULT)

        category_id = self.storage.get_category_id(name)
        if category_id is not None:
            return CategoryResolution(category_id, CategoryStatus.FOUND)

        # Path is derived from the generated id, so it is set after the insert
        category_id = self.storage.create_category(name, parent=0, visible=True)
        self.storage.set_category_path(category_id, f"/{category_id}")
        return CategoryResolution(category_id, CategoryStatus.CREATED)
