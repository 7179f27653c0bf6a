import streamlit as st
import httpx
import asyncio
import os
import time
from typing import Optional, Tuple

API_BASE = os.getenv("API_BASE", "http://api:3000")  # service name in docker network (docker compose network)
POLL_INTERVAL_SECONDS = 1.0
FINAL_STATUSES = ("completed", "cancelled", "failed")
CLASSIFICATION_BADGES = {"GOOD": "🟢 GOOD", "BAD": "🔴 BAD", "ERROR": "🟠 ERROR"}

st.set_page_config(page_title="Consulta de CPF", page_icon="🔎", layout="wide")

# -------------- Helpers --------------
def current_auth() -> Optional[Tuple[str, str]]:
    return st.session_state.get("auth")

async def fetch_json(client: httpx.AsyncClient, method: str, url: str, **kwargs):
    auth = kwargs.pop("auth", current_auth())
    try:
        resp = await client.request(method, url, auth=auth, timeout=10, **kwargs)
        if resp.headers.get("content-type", "").startswith("application/json"):
            data = resp.json()
        else:
            data = {"raw": resp.text}
        if resp.is_error:
            return False, data, resp.status_code
        return True, data, resp.status_code
    except httpx.HTTPError as e:
        return False, {"error": str(e)}, 0

def error_detail(data) -> str:
    return data.get("detail") or data.get("error") if isinstance(data, dict) else str(data)

async def create_batch(client, cpfs_text: str):
    return await fetch_json(client, "POST", f"{API_BASE}/api/v1/batches", json={"cpfs_text": cpfs_text})

async def create_batch_from_registrations(client):
    return await fetch_json(client, "POST", f"{API_BASE}/api/v1/batches", json={"from_registrations": True})

async def get_batch(client, batch_id: str):
    return await fetch_json(client, "GET", f"{API_BASE}/api/v1/batches/{batch_id}")

async def get_batch_report(client, batch_id: str):
    return await fetch_json(client, "GET", f"{API_BASE}/api/v1/batches/{batch_id}/report")

async def create_registration(client, payload: dict):
    return await fetch_json(client, "POST", f"{API_BASE}/api/v1/registrations", json=payload)

async def list_registrations(client):
    return await fetch_json(client, "GET", f"{API_BASE}/api/v1/registrations")

async def validate_credentials(user: str, password: str) -> bool:
    """Realiza uma chamada ao endpoint raiz para validar credenciais Basic Auth."""
    async with httpx.AsyncClient() as client:
        try:
            resp = await client.get(f"{API_BASE}/", auth=(user, password), timeout=5)
            return resp.status_code == 200
        except httpx.HTTPError:
            return False

def logout():
    st.session_state.pop("auth", None)

# -------------- Batch rendering --------------
async def wait_for_batch(client, batch_id: str):
    """Acompanha o lote até um status final, atualizando a barra de progresso."""
    bar = st.progress(0.0, text="Na fila...")
    while True:
        ok, data, status = await get_batch(client, batch_id)
        if not ok:
            bar.empty()
            st.error(f"Erro ao acompanhar lote ({status}): {error_detail(data)}")
            return None
        progress = data.get("progress") or {}
        current, total = progress.get("current", 0), progress.get("total", 0)
        if total:
            bar.progress(min(current / total, 1.0), text=f"Consultando {current}/{total}...")
        if data.get("status") in FINAL_STATUSES:
            bar.empty()
            return data
        await asyncio.sleep(POLL_INTERVAL_SECONDS)

async def render_batch_results(client, batch: dict):
    results = batch.get("results") or []
    status = batch.get("status")
    if status == "failed":
        st.error(f"Lote falhou: {batch.get('reason')}")
        return
    if status == "cancelled":
        st.warning(f"Lote cancelado: {len(results)} CPF(s) consultado(s).")
    else:
        st.success(f"{len(results)} CPF(s) consultado(s).")

    summary = batch.get("summary") or {}
    cols = st.columns(3)
    for col, label in zip(cols, ("GOOD", "BAD", "ERROR")):
        col.metric(CLASSIFICATION_BADGES[label], summary.get(label, 0))

    ok, data, _ = await get_batch_report(client, batch["batch_id"])
    if ok:
        report = data.get("raw", "")
        st.download_button(
            "Baixar .TXT",
            data=report,
            file_name=f"consulta-cpf-{int(time.time() * 1000)}.txt",
            mime="text/plain",
        )
        with st.expander("Copiar resultados"):
            st.code(report, language=None)

    for index, r in enumerate(results, start=1):
        label = f"{index} CPF - {r.get('cpf')} | {CLASSIFICATION_BADGES.get(r.get('classification'), r.get('classification'))}"
        with st.expander(label):
            st.markdown(f"**Nome:** {r.get('name')}")
            st.markdown(f"**Mãe:** {r.get('mother_name')}")
            st.markdown(f"**Data de nascimento:** {r.get('birth_date')}")
            st.markdown("**Endereço(s):**")
            for end in r.get("addresses", []):
                st.write(f"• {end}")
            st.markdown(f"**Email:** {r.get('email')}")
            st.markdown("**Telefone(s):**")
            for tel in r.get("phones", []):
                st.write(f"• {tel}")
            st.markdown(f"**Renda:** R$ {r.get('income')}")
            st.markdown(f"**Score:** {r.get('score')}")
            if r.get("error"):
                st.caption(f"Erro: {r['error']}")

async def run_and_render(client, created: Tuple[bool, dict, int]):
    ok, data, status = created
    if not ok:
        if status == 400:
            st.warning(f"Dados inválidos: {error_detail(data)}")
        else:
            st.error(f"Erro ({status}): {error_detail(data)}")
        return
    st.session_state["last_batch"] = data.get("batch_id")
    batch = await wait_for_batch(client, data["batch_id"])
    if batch:
        await render_batch_results(client, batch)

# -------------- UI Sections --------------
st.title("🔎 Consulta de CPF")
st.caption("Consulta em lote, cadastro e classificação por renda (login obrigatório)")

async def main_ui():
    # Gating de autenticação
    if "auth" not in st.session_state:
        st.subheader("🔐 Login")
        with st.form("login_form", clear_on_submit=False):
            user = st.text_input("Usuário", key="login_user")
            pwd = st.text_input("Senha", type="password", key="login_pwd")
            if st.form_submit_button("Entrar"):
                if not user or not pwd:
                    st.warning("Preencha usuário e senha.")
                elif await validate_credentials(user, pwd):
                    st.session_state["auth"] = (user, pwd)
                    st.rerun()
                else:
                    st.error("Credenciais inválidas ou serviço indisponível.")
        st.stop()

    st.sidebar.markdown(f"**Usuário:** {st.session_state['auth'][0]}")
    st.sidebar.button("Sair", on_click=logout)

    async with httpx.AsyncClient() as client:
        tabs = st.tabs(["Consulta em Lote", "Cadastro", "CPFs Cadastrados", "Sobre"])

        # ---- Tab Consulta ----
        with tabs[0]:
            st.subheader("Lista de CPFs")
            st.caption("Cole os CPFs um por linha. Exemplo: 12345678910")
            cpfs_text = st.text_area("CPFs", height=200, placeholder="12345678910\n98765432100\n11122233344")
            if st.button("Consultar Todos", type="primary"):
                await run_and_render(client, await create_batch(client, cpfs_text))

        # ---- Tab Cadastro ----
        with tabs[1]:
            st.subheader("Cadastrar CPF")
            with st.form("registration_form", clear_on_submit=True):
                c1, c2 = st.columns(2)
                with c1:
                    r_cpf = st.text_input("CPF", placeholder="000.000.000-00")
                    r_name = st.text_input("Nome completo")
                    r_mother = st.text_input("Nome da mãe")
                    r_birth = st.text_input("Data de nascimento", placeholder="dd/mm/aaaa")
                with c2:
                    r_address = st.text_input("Endereço")
                    r_email = st.text_input("Email")
                    r_phone = st.text_input("Telefone")
                    r_income = st.number_input("Renda (R$)", min_value=0.0, step=100.0, format="%.2f")
                if st.form_submit_button("Salvar"):
                    payload = {
                        "cpf": r_cpf, "name": r_name, "mother_name": r_mother, "birth_date": r_birth,
                        "address": r_address, "email": r_email, "phone": r_phone, "income": r_income,
                    }
                    ok, data, status = await create_registration(client, payload)
                    if ok:
                        st.success(f"CPF {data.get('cpf')} cadastrado com sucesso!")
                    elif status == 422:
                        st.error(f"Validação rejeitada: {error_detail(data)}")
                    elif status == 400:
                        st.error(f"Dados inválidos: {error_detail(data)}")
                    else:
                        st.error(f"Erro ({status}): {error_detail(data)}")

        # ---- Tab Cadastrados ----
        with tabs[2]:
            ok, entries, status = await list_registrations(client)
            if not ok:
                st.error(f"Erro ao carregar cadastros ({status}): {error_detail(entries)}")
            else:
                st.subheader(f"CPFs Cadastrados ({len(entries)})")
                if not entries:
                    st.info("Nenhum CPF cadastrado ainda.")
                else:
                    st.dataframe(entries, use_container_width=True)
                    if st.button("Consultar Todos os CPFs Cadastrados", type="primary"):
                        await run_and_render(client, await create_batch_from_registrations(client))

        # ---- Tab Sobre ----
        with tabs[3]:
            st.subheader("Sobre")
            st.markdown(
                """
                **Consulta de CPF** – Interface de apoio para a API.
                - Consulta em lote, um CPF por vez, com pausa entre consultas
                - Classificação por renda declarada: GOOD (≥ R$ 3.000), BAD, ERROR
                - Cadastro local de CPFs (validação dos dígitos verificadores)
                - Exportação dos resultados em .TXT
                """
            )
            st.caption("Construído com Streamlit + httpx (async)")

asyncio.run(main_ui())
