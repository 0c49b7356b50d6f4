"""
Streamlit entry point for the curricular adaptations tracker.

Run with:
    streamlit run app.py
"""
from __future__ import annotations
import uuid
from datetime import date

import streamlit as st

from adapta_core.config import load_config
from adapta_core.errors import AuthenticationError, ValidationError
from adapta_core.errors.handlers import ErrorContext, error_boundary, handle_error
from adapta_core.logging import setup_logging
from adapta_core.models import ReportResult
from adapta_core.offline import UnifiedDataService, WriteOutcome

st.set_page_config(
    page_title="Adaptações Curriculares",
    page_icon="📚",
    layout="wide",
)

RESULT_LABELS = {
    ReportResult.POSITIVE.value: "Positivo",
    ReportResult.NEUTRAL.value: "Neutro",
    ReportResult.NEGATIVE.value: "Negativo",
}


BROWSER_PARAM = "sid"


def browser_id() -> str:
    """Id kept in the URL so a reload finds the same stored session."""
    sid = st.query_params.get(BROWSER_PARAM)
    if not sid:
        sid = uuid.uuid4().hex
        st.query_params[BROWSER_PARAM] = sid
    return sid


def get_service() -> UnifiedDataService:
    """One service per browser; its stored session is keyed by the browser id."""
    if "data_service" not in st.session_state:
        config = load_config(st.secrets)
        setup_logging(config.log_level)
        service = UnifiedDataService.from_config(config, client_id=browser_id())
        service.start()
        st.session_state["data_service"] = service
    return st.session_state["data_service"]


def notify(outcome: WriteOutcome, done: str) -> None:
    if not outcome.success:
        st.error(outcome.message)
    elif outcome.offline:
        st.warning(f"{done} localmente (offline)")
    else:
        st.success(f"{done} com sucesso!")


# ============================================================================
# LOGIN
# ============================================================================

def render_login(service: UnifiedDataService) -> None:
    st.title("📚 Adaptações Curriculares")
    with st.form("login"):
        email = st.text_input("E-mail")
        password = st.text_input("Senha", type="password")
        submitted = st.form_submit_button("Entrar", type="primary")

    if submitted:
        try:
            service.sign_in(email, password)
            st.rerun()
        except AuthenticationError:
            st.error("Usuário não encontrado. Verifique o e-mail ou senha.")


def render_sidebar(service: UnifiedDataService) -> None:
    user = service.session.user
    with st.sidebar:
        st.markdown(f"**{user.name or user.email}**")
        st.caption("Coordenador(a)" if user.is_coordinator else "Professor(a)")
        if st.button("Sair", use_container_width=True):
            service.sign_out()
            st.session_state.pop("selected_student", None)
            st.rerun()
        with st.expander("Status"):
            st.json(service.get_status())
            if st.button("Testar conexão"):
                result = service.api.test_connection()
                if result["status"] == "success":
                    st.success(result["message"])
                else:
                    st.warning(result["message"])


# ============================================================================
# STUDENTS
# ============================================================================

def student_form(key: str, initial: dict | None = None) -> dict | None:
    initial = initial or {}
    with st.form(key, clear_on_submit=not initial):
        name = st.text_input("Nome", initial.get("name", ""))
        course = st.text_input("Curso", initial.get("course", ""))
        klass = st.text_input("Turma", initial.get("class", ""))
        birth = st.text_input("Data de nascimento (AAAA-MM-DD)", initial.get("birthDate", ""))
        registration = st.text_input("Matrícula", initial.get("registrationNumber", ""))
        guardian = st.text_input("Responsável", initial.get("guardianName", "") or "")
        contact = st.text_input("Contato do responsável", initial.get("guardianContact", "") or "")
        if st.form_submit_button("Salvar"):
            return {
                "name": name, "course": course, "class": klass, "birthDate": birth,
                "registrationNumber": registration, "guardianName": guardian,
                "guardianContact": contact,
            }
    return None


def render_students(service: UnifiedDataService) -> None:
    st.header("Estudantes")
    students = service.list_students()
    df = service.store.to_dataframe("students")
    if not df.empty:
        columns = [c for c in ("name", "course", "class", "registrationNumber") if c in df.columns]
        st.dataframe(df[columns], use_container_width=True, hide_index=True)
    else:
        st.info("Nenhum estudante cadastrado.")

    for student in students:
        cols = st.columns([6, 1, 1])
        cols[0].write(f"{student.get('name')} · {student.get('class')}")
        if cols[1].button("Abrir", key=f"open_{student['id']}"):
            st.session_state["selected_student"] = student["id"]
            st.rerun()
        if service.session.is_coordinator and cols[2].button("Excluir", key=f"del_{student['id']}"):
            with ErrorContext("Excluindo estudante"):
                notify(service.writes.delete_student(student["id"]), "Estudante excluído")
                st.rerun()

    if service.session.is_coordinator:
        with st.expander("Novo estudante"):
            data = student_form("new_student")
            if data is not None:
                try:
                    notify(service.writes.create_student(data), "Estudante cadastrado")
                except ValidationError as e:
                    st.error(e.message)
                except Exception as e:
                    handle_error(e, user_message="Erro ao salvar estudante")

        with st.expander("Importar da API"):
            with ErrorContext("Importando estudantes"):
                importable = service.roster.list_importable_students()
                st.write(f"{len(importable)} estudante(s) ainda não importado(s).")
                if importable and st.button("Importar todos"):
                    created = service.roster.import_students(importable)
                    st.success(f"{len(created)} estudante(s) importado(s)")
                    st.rerun()


# ============================================================================
# STUDENT REPORT
# ============================================================================

@error_boundary(error_message="Erro ao carregar relatório")
def render_report(service: UnifiedDataService, student_id: str) -> None:
    if st.button("← Voltar"):
        st.session_state.pop("selected_student", None)
        st.rerun()

    report = service.get_student_report(student_id)
    if report.student is None:
        st.error("Dados não encontrados")
        return

    student = report.student
    st.header(student.get("name", ""))
    st.caption(
        f"{student.get('course', '')} · Turma {student.get('class', '')} · "
        f"Matrícula {student.get('registrationNumber', '')}"
    )

    if service.session.is_coordinator:
        with st.expander("Editar estudante"):
            data = student_form("edit_student", student)
            if data is not None:
                notify(service.writes.update_student(student_id, data), "Estudante atualizado")

    st.subheader("Adaptações")
    for adaptation in report.adaptations:
        with st.container(border=True):
            st.markdown(f"**{adaptation.get('description', '')}**")
            st.write(adaptation.get("justification", ""))
            st.caption(adaptation.get("date", ""))
            if service.session.is_coordinator and st.button("Excluir", key=f"del_ad_{adaptation.get('id')}"):
                notify(service.writes.delete_adaptation(student_id, adaptation["id"]), "Adaptação excluída")
                st.rerun()

    if service.session.is_coordinator:
        with st.form("new_adaptation", clear_on_submit=True):
            st.markdown("Nova adaptação")
            description = st.text_input("Descrição")
            justification = st.text_area("Justificativa")
            when = st.date_input("Data", value=date.today())
            if st.form_submit_button("Registrar"):
                try:
                    notify(service.writes.create_adaptation(student_id, {
                        "description": description,
                        "justification": justification,
                        "date": when.isoformat(),
                    }), "Adaptação registrada")
                except ValidationError as e:
                    st.error(e.message)

    st.subheader("Relatos")
    for item in report.reports:
        with st.container(border=True):
            result = RESULT_LABELS.get(str(item.get("result", "neutro")).lower(), "Neutro")
            st.markdown(f"**{item.get('subject', '')}** · {result}")
            st.write(item.get("description", ""))
            st.caption(f"{item.get('teacherName', '')} · {item.get('date', '')}")
            own = item.get("teacherId") == service.session.user.id
            if (own or service.session.is_coordinator) and st.button("Excluir", key=f"del_rep_{item.get('id')}"):
                notify(service.writes.delete_report(student_id, item["id"]), "Relato excluído")
                st.rerun()

    if not service.session.is_coordinator:
        with st.form("new_report", clear_on_submit=True):
            st.markdown("Novo relato")
            subject = st.text_input("Disciplina")
            result = st.selectbox("Resultado", list(RESULT_LABELS), format_func=RESULT_LABELS.get, index=1)
            description = st.text_area("Descrição")
            when = st.date_input("Data do relato", value=date.today())
            if st.form_submit_button("Registrar"):
                try:
                    notify(service.writes.create_report(student_id, {
                        "subject": subject,
                        "result": result,
                        "description": description,
                        "date": when.isoformat(),
                    }), "Relato registrado")
                except ValidationError as e:
                    st.error(e.message)


# ============================================================================
# MAIN
# ============================================================================

service = get_service()
if not service.session.is_authenticated:
    render_login(service)
else:
    render_sidebar(service)
    selected = st.session_state.get("selected_student")
    if selected:
        render_report(service, selected)
    else:
        render_students(service)
