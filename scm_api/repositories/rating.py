"""Supplier rating and rating request repositories."""


from scm_api.domain.rating import RatingRequest, SupplierRating
from scm_api.repositories.base import BaseRepository


class SupplierRatingRepository(BaseRepository[SupplierRating]):
    model = SupplierRating


class RatingRequestRepository(BaseRepository[RatingRequest]):
    model = RatingRequest
