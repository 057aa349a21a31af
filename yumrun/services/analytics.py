import pandas as pd
from datetime import datetime, timedelta
from typing import Dict, List, Any
from yumrun.models.models import Order, Restaurant
from yumrun.models.review import Review


class AnalyticsService:
    """Aggregations behind the admin statistics endpoint"""

    @staticmethod
    def get_orders_dataframe(days_back: int = 30) -> pd.DataFrame:
        """Orders created in the last ``days_back`` days as a DataFrame"""
        start_date = datetime.utcnow() - timedelta(days=days_back)
        orders = Order.query.filter(Order.created_at >= start_date).all()

        data = []
        for order in orders:
            data.append({
                'order_id': order.id,
                'restaurant_id': order.restaurant_id,
                'status': order.status,
                'payment_status': order.payment_status,
                'grand_total': order.grand_total or 0,
                'item_count': sum(item.quantity for item in order.items),
                'created_at': order.created_at
            })

        return pd.DataFrame(data, columns=[
            'order_id', 'restaurant_id', 'status', 'payment_status',
            'grand_total', 'item_count', 'created_at'
        ])

    @staticmethod
    def get_reviews_dataframe(days_back: int = 30) -> pd.DataFrame:
        start_date = datetime.utcnow() - timedelta(days=days_back)
        reviews = Review.query.filter(Review.created_at >= start_date).all()

        data = [{
            'restaurant_id': review.restaurant_id,
            'rating': review.rating,
            'has_comment': 1 if review.comment else 0,
            'created_at': review.created_at
        } for review in reviews]

        return pd.DataFrame(data, columns=['restaurant_id', 'rating', 'has_comment', 'created_at'])

    @staticmethod
    def daily_revenue(orders_df: pd.DataFrame, days_back: int = 30) -> List[Dict[str, Any]]:
        """Paid revenue and order count per day, including days without orders"""
        end = datetime.utcnow().date()
        days = pd.date_range(end=end, periods=days_back, freq='D').date

        if orders_df.empty:
            return [{'date': day.isoformat(), 'revenue': 0.0, 'orders': 0} for day in days]

        df = orders_df.copy()
        df['date'] = pd.to_datetime(df['created_at']).dt.date
        paid = df[df['payment_status'] == 'PAID']

        revenue = paid.groupby('date')['grand_total'].sum()
        counts = df[df['status'] != 'CANCELLED'].groupby('date')['order_id'].count()

        revenue = revenue.reindex(days, fill_value=0)
        counts = counts.reindex(days, fill_value=0)

        return [
            {'date': day.isoformat(), 'revenue': round(float(revenue[day]), 2), 'orders': int(counts[day])}
            for day in days
        ]

    @staticmethod
    def top_restaurants(orders_df: pd.DataFrame, limit: int = 5) -> List[Dict[str, Any]]:
        """Restaurants ranked by paid revenue"""
        if orders_df.empty:
            return []

        paid = orders_df[orders_df['payment_status'] == 'PAID']
        if paid.empty:
            return []

        ranked = (
            paid.groupby('restaurant_id')
            .agg(revenue=('grand_total', 'sum'), orders=('order_id', 'count'))
            .sort_values('revenue', ascending=False)
            .head(limit)
        )

        results = []
        for restaurant_id, row in ranked.iterrows():
            restaurant = Restaurant.query.get(restaurant_id)
            results.append({
                'restaurant_id': restaurant_id,
                'name': restaurant.name if restaurant else None,
                'revenue': round(float(row['revenue']), 2),
                'orders': int(row['orders'])
            })
        return results

    @staticmethod
    def rating_summary(reviews_df: pd.DataFrame) -> Dict[str, Any]:
        """Rating distribution and feedback rate of recent reviews"""
        if reviews_df.empty:
            return {'total_reviews': 0, 'average_rating': 0, 'distribution': {}, 'comment_rate': 0}

        distribution = reviews_df['rating'].value_counts().sort_index()
        return {
            'total_reviews': int(len(reviews_df)),
            'average_rating': round(float(reviews_df['rating'].mean()), 2),
            'distribution': {str(k): int(v) for k, v in distribution.items()},
            'comment_rate': round(float(reviews_df['has_comment'].mean() * 100), 2)
        }

    @staticmethod
    def generate_statistics(days_back: int = 30) -> Dict[str, Any]:
        orders_df = AnalyticsService.get_orders_dataframe(days_back)
        reviews_df = AnalyticsService.get_reviews_dataframe(days_back)

        paid = orders_df[orders_df['payment_status'] == 'PAID'] if not orders_df.empty else orders_df
        return {
            'period_days': days_back,
            'total_orders': int(len(orders_df)),
            'total_revenue': round(float(paid['grand_total'].sum()), 2) if not paid.empty else 0.0,
            'average_order_value': round(float(paid['grand_total'].mean()), 2) if not paid.empty else 0.0,
            'status_breakdown': (
                {k: int(v) for k, v in orders_df['status'].value_counts().items()}
                if not orders_df.empty else {}
            ),
            'daily_revenue': AnalyticsService.daily_revenue(orders_df, days_back),
            'top_restaurants': AnalyticsService.top_restaurants(orders_df),
            'ratings': AnalyticsService.rating_summary(reviews_df)
        }
