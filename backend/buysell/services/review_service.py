"""
Review Service - product reviews from verified buyers
"""
import logging
from typing import Optional

from buysell.core.auth import TokenUser
from buysell.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from buysell.core.pagination import page_offset
from buysell.domain.review import Review, ReviewCreate, ReviewUpdate
from buysell.repositories.order_repository import OrderRepository
from buysell.repositories.product_repository import ProductRepository
from buysell.repositories.review_repository import ReviewRepository

logger = logging.getLogger(__name__)


class ReviewService:

    def __init__(self, review_repo: ReviewRepository = None, product_repo: ProductRepository = None,
                 order_repo: OrderRepository = None):
        self.review_repo = review_repo or ReviewRepository()
        self.product_repo = product_repo or ProductRepository()
        self.order_repo = order_repo or OrderRepository()

    def list_for_product(self, product_id: int, page: int = 1, limit: int = 10,
                         rating: Optional[int] = None) -> dict:
        if not self.product_repo.find_by_id(product_id):
            raise NotFoundError("Product not found")

        reviews, total = self.review_repo.find_by_product(
            product_id, rating, limit, page_offset(page, limit)
        )
        return {
            'reviews': reviews,
            'total': total,
            'statistics': self.review_repo.get_rating_stats(product_id),
        }

    def create_review(self, user: TokenUser, payload: ReviewCreate) -> Review:
        """
        Raises:
            NotFoundError: product missing
            ForbiddenError: no delivered order containing the product (admins exempt)
            ConflictError: already reviewed
        """
        if not self.product_repo.find_by_id(payload.product_id):
            raise NotFoundError("Product not found")

        order_id = self.order_repo.find_delivered_purchase(user.id, payload.product_id)
        if order_id is None and not user.is_admin:
            raise ForbiddenError("You can only review products you have received")

        if self.review_repo.exists_for_user(payload.product_id, user.id):
            raise ConflictError("You have already reviewed this product")

        review = self.review_repo.create(
            payload.product_id, user.id, payload.rating, payload.title, payload.comment, order_id
        )
        logger.info(f"Review {review.id} on product {payload.product_id} by user {user.id}")
        return review

    def _get_review(self, review_id: int) -> Review:
        review = self.review_repo.find_by_id(review_id)
        if not review:
            raise NotFoundError("Review not found")
        return review

    def update_review(self, review_id: int, user: TokenUser, payload: ReviewUpdate) -> Review:
        review = self._get_review(review_id)
        if review.user_id != user.id:
            raise ForbiddenError("You can only edit your own reviews")

        return self.review_repo.update(review_id, review.product_id, payload.model_dump(exclude_unset=True))

    def delete_review(self, review_id: int, user: TokenUser) -> None:
        review = self._get_review(review_id)
        if review.user_id != user.id and not user.is_admin:
            raise ForbiddenError("You can only delete your own reviews")

        self.review_repo.delete(review_id, review.product_id)
