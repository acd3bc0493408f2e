from order_browser.demo.orders import seed_demo_orders

__all__ = ["seed_demo_orders"]
