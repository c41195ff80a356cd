"""Streamlit dashboard that replays the noisy sinusoid as a live feed."""
from __future__ import annotations

import time

import matplotlib.pyplot as plt
import pandas as pd
import streamlit as st

from kfstream.data.datasets import dataset_from_env
from kfstream.envs import InvalidParameter, LiveFeed, SignalEnvironment
from kfstream.envs.feed import DEFAULT_INTERVAL
from kfstream.envs.signal import latent_signal
from kfstream.plotting import plot_signal

st.set_page_config(page_title="Noisy sinusoid feed", layout="wide")
st.title("Noisy sinusoid feed")
st.markdown(
    """
    Each step advances the environment once: the latent value
    ``10 * sin(0.1 * t)`` is observed through Gaussian noise of the chosen
    precision. The same seed always replays the same observations; the
    interval only changes how fast they appear.
    """
)

with st.sidebar:
    st.header("Environment")
    with st.form("feed-form"):
        initial_state = st.number_input("Initial state", value=0.0, step=1.0)
        precision = st.number_input("Observation precision", value=0.1, min_value=0.0, step=0.05, format="%.3f")
        seed = st.number_input("Seed", value=123, min_value=0, step=1)
        steps = st.slider("Steps", min_value=10, max_value=1000, value=300, step=10)
        interval = st.slider("Interval (s)", min_value=0.0, max_value=0.5, value=DEFAULT_INTERVAL, step=0.001)
        submitted = st.form_submit_button("Start feed")

if submitted:
    try:
        env = SignalEnvironment(initial_state, precision, seed=int(seed))
    except InvalidParameter as exc:
        st.error(str(exc))
        st.stop()

    feed = LiveFeed(env, interval=interval)
    chart = st.line_chart(pd.DataFrame({"latent": [], "observation": []}))
    progress = st.progress(0.0)

    def _append(record) -> None:  # type: ignore[no-untyped-def]
        chart.add_rows(pd.DataFrame({"latent": [latent_signal(env.current_state)], "observation": [record[feed.name]]}))

    with feed.subscribe(_append):
        for step in range(steps):
            feed.run(1)
            progress.progress((step + 1) / steps)
            if interval:
                time.sleep(interval)

    dataset = dataset_from_env(env)
    fig, ax = plt.subplots(figsize=(10, 4))
    plot_signal(dataset.latent, dataset.observations, ax=ax)
    st.pyplot(fig)
    plt.close(fig)
    st.dataframe(env.to_frame(), use_container_width=True)
    st.download_button(
        "Download trajectory (CSV)",
        data=env.to_frame().to_csv(index=False),
        file_name=f"sinusoid_seed{int(seed)}.csv",
        mime="text/csv",
    )
else:
    st.info("Configure the environment in the sidebar and press *Start feed*.")
