from .routes_admin_weights import router as admin_weights_router
from .routes_recommendations import router as recommend_router

all_routers = [
    admin_weights_router,
    recommend_router,
]
