# app.py
"""
Event Performance Dashboard - Main Entry Point

Version: 1.0.0
"""

import streamlit as st
from utils.config import config
from utils.db import check_db_connection, get_connection_pool_status
import logging

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.is_feature_enabled("DEBUG_MODE") else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ==================== PAGE CONFIGURATION ====================

APP_NAME = "Event Performance"
APP_ICON = "📊"
APP_VERSION = "1.0.0"

st.set_page_config(
    page_title=APP_NAME,
    page_icon=APP_ICON,
    layout="wide",
    initial_sidebar_state="expanded"
)

# ==================== CUSTOM CSS ====================

st.markdown("""
<style>
    .main-header {
        font-size: 2.5rem;
        font-weight: bold;
        margin-bottom: 0.5rem;
        color: #2c9b5e;
    }

    .sub-header {
        font-size: 1.1rem;
        color: #666;
        margin-bottom: 2rem;
    }

    .info-card {
        background: #f8f9fa;
        padding: 1.5rem;
        border-radius: 0.5rem;
        border-left: 4px solid #4abf79;
        margin-bottom: 1rem;
    }

    .footer {
        text-align: center;
        color: #888;
        padding: 1rem;
        margin-top: 3rem;
        border-top: 1px solid #eee;
        font-size: 0.9rem;
    }
</style>
""", unsafe_allow_html=True)


# ==================== MAIN ====================

def main():
    """Landing page: connection status and available dashboards"""
    st.markdown(f'<p class="main-header">{APP_ICON} {APP_NAME}</p>', unsafe_allow_html=True)
    st.markdown('<p class="sub-header">Sales event results by venue, agency, week and staff</p>',
                unsafe_allow_html=True)

    db_ok, db_error = check_db_connection()
    if not db_ok:
        st.error(f"⚠️ {db_error}")
        st.info("Please check the database settings in .env or Streamlit secrets.")
    else:
        st.success("✅ Database connected")

    st.markdown("### 📊 Available Dashboards")

    st.markdown("""
    <div class="info-card">
        <strong>📊 Event Performance</strong><br>
        <span style="color: #666;">Monthly achievement status, event list, weekly breakdown,
        venue / agency / staff analytics, ranking and Excel export.</span>
    </div>
    """, unsafe_allow_html=True)

    if config.is_feature_enabled("DEBUG_MODE"):
        st.markdown("---")
        with st.expander("🔧 System Status"):
            pool_status = get_connection_pool_status()

            col1, col2, col3 = st.columns(3)
            with col1:
                st.metric("DB Status", pool_status.get("status", "OK"))
            with col2:
                st.metric("Connections Used", pool_status.get("checked_out", 0))
            with col3:
                st.metric("Available", pool_status.get("checked_in", 0))

    st.markdown(f"""
    <div class="footer">
        <strong>{APP_NAME}</strong> v{APP_VERSION}
    </div>
    """, unsafe_allow_html=True)


if __name__ == "__main__":
    main()
