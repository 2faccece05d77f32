from .route_guard import RouteGuardMiddleware, evaluate_route, classify_path, RouteClass
