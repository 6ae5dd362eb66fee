"""
Streamlit Console for ArthMitra

A small host UI around the SMS import core, for running scans on the
device (Termux) and checking what was imported.

DESIGN PRINCIPLES:
1. Permission is asked for explicitly, never in the background
2. The user decides which senders are trusted
3. Every scan shows exactly what was imported, skipped, or failed
4. Clear error messages in simple language
"""

import asyncio

import streamlit as st

from src.audit import configure_logging, create_correlation_id
from src.config import get_settings, validate_all_settings
from src.services.sms import (
    MessageSourceError,
    PermissionDeniedError,
    PlatformUnsupportedError,
)
from src.services.storage import StorageError
from src.orchestrator import create_app_components


st.set_page_config(
    page_title="ArthMitra",
    page_icon="💰",
    layout="centered",
    initial_sidebar_state="expanded",
)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    configure_logging(get_settings().app.debug_mode)
    return create_app_components()


def main():
    """Main application entry point."""
    try:
        scan_flow, insights_agent, preferences, store = get_components()
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        render_settings_page()
        return

    st.sidebar.title("💰 ArthMitra")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📩 Scan SMS", "✅ Trusted Senders", "💬 Ask ArthMitra", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **How to use:**
        1. Allow SMS access
        2. Pick the senders you trust
        3. Scan to import new transactions
        """
    )

    if page == "📩 Scan SMS":
        render_scan_page(scan_flow)
    elif page == "✅ Trusted Senders":
        render_allow_list_page(scan_flow)
    elif page == "💬 Ask ArthMitra":
        render_insights_page(insights_agent, preferences, store)
    elif page == "⚙️ Settings":
        render_settings_page(preferences)


def render_scan_page(scan_flow):
    """Permission request and scan."""
    st.title("📩 Import from SMS")
    st.markdown("Reads bank and payment messages and adds new transactions.")

    if st.button("🔓 Allow SMS access"):
        granted = run_async(scan_flow.request_permission())
        if granted:
            st.success("SMS access granted.")
        else:
            st.warning("SMS access was not granted. Scanning needs it.")

    if st.button("🔄 Scan now", type="primary"):
        with st.spinner("Reading your messages..."):
            try:
                result = run_async(scan_flow.run_scan(create_correlation_id()))
            except PlatformUnsupportedError as e:
                st.error(f"📵 {e}")
                return
            except PermissionDeniedError:
                st.error("🔒 SMS permission is missing. Tap 'Allow SMS access' first.")
                return

        col1, col2, col3, col4 = st.columns(4)
        col1.metric("Imported", result.success)
        col2.metric("Skipped", result.skipped)
        col3.metric("Duplicates", result.duplicates)
        col4.metric("Failed", result.failed)

        if result.total == 0:
            st.info("No new transaction messages since the last scan.")

        if result.errors:
            with st.expander("⚠️ Problems"):
                for error in result.errors:
                    st.markdown(f"- {error}")


def render_allow_list_page(scan_flow):
    """Let the user pick trusted senders."""
    st.title("✅ Trusted Senders")
    st.markdown(
        "Only messages from these senders are scanned. "
        "Leave the list empty to scan every sender."
    )

    try:
        providers = run_async(scan_flow.list_providers())
    except MessageSourceError as e:
        st.error(f"Cannot read messages: {e}")
        providers = []

    current = run_async(scan_flow.get_allow_list())
    options = sorted(set(providers) | set(current))

    selected = st.multiselect(
        "Senders",
        options=options,
        default=current,
    )

    if st.button("💾 Save", type="primary"):
        try:
            run_async(scan_flow.update_allow_list(selected))
            st.success(f"Saved {len(selected)} trusted sender(s).")
        except StorageError as e:
            st.error(f"Could not save: {e}")


def render_insights_page(insights_agent, preferences, store):
    """Ask questions about spending."""
    st.title("💬 Ask ArthMitra")

    with st.expander("📝 Example Questions"):
        st.markdown("""
        - "How much did I spend this month?"
        - "What is my biggest expense category?"
        - "Am I saving money?"
        """)

    question = st.text_input(
        "Your question:",
        placeholder="e.g., Where does most of my money go?",
    )

    if st.button("🔍 Get Answer", type="primary") and question:
        with st.spinner("Looking at your transactions..."):
            currency = run_async(preferences.get_currency_symbol())
            answer = run_async(
                insights_agent.ask_about_user(
                    question,
                    store,
                    get_settings().app.user_id,
                    currency,
                )
            )
        st.markdown(answer)


def render_settings_page(preferences=None):
    """Render the settings page."""
    st.title("⚙️ Settings")

    if preferences is not None:
        st.markdown("### Currency")
        current = run_async(preferences.get_currency_symbol())
        symbol = st.text_input("Currency symbol", value=current, max_chars=3)
        if st.button("💾 Save currency") and symbol != current:
            run_async(preferences.set_currency_symbol(symbol))
            st.success(f"Currency set to {symbol}")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Gemini (AI)", "gemini"),
        ("Supabase (Transactions)", "supabase"),
        ("Google Sheets (Transactions)", "google_sheets"),
        ("SMS Scan", "scan"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    if not status.get("gemini_sms_key", False):
        st.warning("No Gemini key for SMS scanning. Set GEMINI_SMS_PRIMARY_API_KEY.")

    st.markdown("---")
    st.markdown(
        "To configure the application, create a `.env` file with your API keys "
        "and USER_ID."
    )


if __name__ == "__main__":
    main()
