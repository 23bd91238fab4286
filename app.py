import streamlit as st
import pandas as pd
import plotly.graph_objects as go

from backend.app.core.config import ConfigError
from backend.app.db.models.core_types import OrderStatus
from backend.services import documents, orders
from backend.services.exports import inventory_frame
from backend.services.locations import list_locations

# --- CONFIGURATION & DESIGN ---
st.set_page_config(page_title="KIKIKS INVENTORY - OPERATIONS", layout="wide", page_icon="🍨")

st.markdown("""
    <style>
    .stMetric {
        background-color: #1e2130;
        padding: 15px;
        border-radius: 10px;
        border-left: 5px solid #ffb703;
    }
    h1 {
        color: #ffb703;
        text-shadow: 2px 2px #000;
    }
    .stDownloadButton>button {
        width: 100%;
        border-radius: 5px;
        font-weight: bold;
    }
    </style>
    """, unsafe_allow_html=True)

OPEN_STATUSES = (OrderStatus.unread, OrderStatus.read)


# --- DATABASE ---
@st.cache_resource
def get_session_factory():
    from backend.app.db.session import SessionLocal
    return SessionLocal


try:
    SessionLocal = get_session_factory()
except ConfigError as exc:
    st.error(f"Configuration error: {exc}")
    st.stop()


def highlight_low(row, threshold):
    color = "background-color: #5c1a1a" if row["qty_on_hand"] < threshold else ""
    return [color] * len(row)


st.title("🍨 KIKIKS OPERATIONS")

db = SessionLocal()
try:
    locations = [l.name for l in list_locations(db)]

    with st.sidebar:
        st.header("📍 LOCATION")
        location = st.selectbox("Location", ["All locations"] + locations)
        st.divider()
        st.header("⚠️ ALERTS")
        threshold = st.number_input("Low stock threshold", min_value=0, value=10)

    selected = None if location == "All locations" else location
    stock = inventory_frame(db, selected)

    open_resellers = [o for o in orders.list_reseller_orders(db) if o.status in OPEN_STATUSES]
    open_transfers = [o for o in orders.list_transfer_orders(db) if o.status in OPEN_STATUSES]
    low = stock[stock["qty_on_hand"] < threshold]

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("SKUs", stock["sku"].nunique())
    c2.metric("UNITS ON HAND", int(stock["qty_on_hand"].sum()))
    c3.metric("OPEN RESELLER ORDERS", len(open_resellers))
    c4.metric("OPEN TRANSFERS", len(open_transfers))

    # --- STOCK ---
    st.markdown("---")
    st.markdown(f"### 📦 Stock : {location}")
    if low.empty:
        st.success("✅ No SKU under the threshold")
    else:
        st.error(f"⚠️ {len(low)} rows under {threshold} units")

    st.dataframe(
        stock.style.apply(highlight_low, threshold=threshold, axis=1),
        use_container_width=True,
        hide_index=True,
    )
    st.download_button(
        label="⬇️ Export CSV",
        data=stock.to_csv(index=False),
        file_name="kikiks_inventory.csv",
        mime="text/csv",
    )

    per_sku = stock.groupby("sku", as_index=False)["qty_on_hand"].sum()
    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=per_sku["sku"],
        y=per_sku["qty_on_hand"],
        marker_color=["#ff0066" if q < threshold else "#ffb703" for q in per_sku["qty_on_hand"]],
        name="On hand",
    ))
    fig.update_layout(
        template="plotly_dark",
        height=350,
        margin=dict(l=20, r=20, t=30, b=20),
    )
    st.plotly_chart(fig, use_container_width=True)

    # --- OPEN ORDERS ---
    st.markdown("---")
    st.markdown("### 🧾 Open reseller orders")
    if not open_resellers:
        st.info("No open reseller orders")
    for o in open_resellers:
        with st.container():
            left, right = st.columns([3, 1])
            lines = pd.DataFrame(
                [{"sku": l.sku, "description": l.description, "qty": l.quantity} for l in o.lines]
            )
            left.markdown(f"**#{o.id} {o.reseller_name}** ({o.zone_name or 'no zone'}) : {o.status.value}")
            left.dataframe(lines, use_container_width=True, hide_index=True)
            right.download_button(
                label="📄 Packing list",
                data=documents.reseller_packing_list(o),
                file_name=f"packing-list-R{o.id}.pdf",
                mime="application/pdf",
                key=f"pl_{o.id}",
            )
finally:
    db.close()

st.divider()
st.caption("Kikiks Inventory | Operations dashboard")
