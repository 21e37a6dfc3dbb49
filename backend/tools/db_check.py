import sqlite3
import sys

DB = sys.argv[1] if len(sys.argv) > 1 else "dev.db"
ORDER_NUMBER = sys.argv[2] if len(sys.argv) > 2 else None

conn = sqlite3.connect(DB)
cur = conn.cursor()

print("=== Recent Orders ===")
if ORDER_NUMBER:
    cur.execute(
        "SELECT id, order_number, user_id, status, total_amount, created_at FROM orders WHERE order_number=?",
        (ORDER_NUMBER,),
    )
else:
    cur.execute(
        "SELECT id, order_number, user_id, status, total_amount, created_at FROM orders ORDER BY created_at DESC LIMIT 20"
    )
orders = cur.fetchall()
for r in orders:
    print(r)

if ORDER_NUMBER and orders:
    print(f"\n=== Items for {ORDER_NUMBER} ===")
    cur.execute(
        "SELECT product_id, quantity, unit_price, total_price FROM order_items WHERE order_id=?",
        (orders[0][0],),
    )
    for r in cur.fetchall():
        print(r)

# checkout writes the order and its items separately; list orders left without items
print("\n=== Orders without line items ===")
cur.execute(
    "SELECT o.order_number, o.status, o.total_amount, o.created_at FROM orders o "
    "LEFT JOIN order_items i ON i.order_id = o.id WHERE i.id IS NULL ORDER BY o.created_at DESC"
)
for r in cur.fetchall():
    print(r)

print("\n=== Orders whose total differs from their items ===")
cur.execute(
    "SELECT o.order_number, o.total_amount, SUM(i.total_price) FROM orders o "
    "JOIN order_items i ON i.order_id = o.id GROUP BY o.id HAVING ABS(o.total_amount - SUM(i.total_price)) > 0.001"
)
for r in cur.fetchall():
    print(r)

conn.close()
