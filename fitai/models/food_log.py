# backend/fitai/models/food_log.py
from datetime import datetime

from .. import db

MACRO_FIELDS = ("calories", "protein", "carbs", "fat")


class FoodLog(db.Model):
    __tablename__ = "food_logs"
    __table_args__ = (
        db.UniqueConstraint("owner", "log_date", name="uq_food_logs_owner_date"),
    )

    id = db.Column(db.BigInteger().with_variant(db.Integer, "sqlite"), primary_key=True)
    user_id = db.Column(db.BigInteger, db.ForeignKey("users.id"), nullable=False)
    owner = db.Column(db.String(191), nullable=False, index=True)
    log_date = db.Column(db.Date, nullable=False)

    # [{"name": "Oats", "calories": 300, "protein": 10, "carbs": 50, "fat": 6}, ...]
    meals = db.Column(db.JSON, nullable=False, default=list)
    total_calories = db.Column(db.Float, nullable=False, default=0)
    total_protein = db.Column(db.Float, nullable=False, default=0)
    total_carbs = db.Column(db.Float, nullable=False, default=0)
    total_fat = db.Column(db.Float, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    def set_meals(self, meals):
        """Replace the meal list and recompute the daily totals."""
        self.meals = list(meals)
        self.total_calories = sum(m["calories"] for m in self.meals)
        self.total_protein = sum(m["protein"] for m in self.meals)
        self.total_carbs = sum(m["carbs"] for m in self.meals)
        self.total_fat = sum(m["fat"] for m in self.meals)

    def to_dict(self):
        return {
            "id": self.id,
            "date": self.log_date.isoformat(),
            "meals": list(self.meals or []),
            "totalCalories": self.total_calories,
            "totalProtein": self.total_protein,
            "totalCarbs": self.total_carbs,
            "totalFat": self.total_fat,
        }
