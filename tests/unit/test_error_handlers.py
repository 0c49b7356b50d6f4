# =============================================================================
# tests/unit/test_error_handlers.py
# Unit Tests for the Streamlit error helpers
# =============================================================================

import pytest

from adapta_core.errors import LocalStoreError, NetworkError, RequestTimeoutError, ValidationError


@pytest.fixture
def handlers(mock_streamlit, monkeypatch):
    from adapta_core.errors import handlers as module

    monkeypatch.setattr(module, "st", mock_streamlit)
    return module


class TestHandleError:

    def test_recoverable_error(self, handlers, mock_streamlit):
        handlers.handle_error(NetworkError("API fora do ar"))

        mock_streamlit.error.assert_called_once_with("Erro: Sem conexão com o servidor.")

    def test_unrecoverable_error(self, handlers, mock_streamlit):
        handlers.handle_error(LocalStoreError("disco cheio"))

        message = mock_streamlit.error.call_args.args[0]
        assert message == "Erro crítico: Não foi possível gravar os dados neste dispositivo. Contate o suporte."

    def test_custom_message(self, handlers, mock_streamlit):
        handlers.handle_error(ValueError("x"), user_message="Erro ao salvar estudante")

        mock_streamlit.error.assert_called_once_with("Erro: Erro ao salvar estudante")

    def test_silent(self, handlers, mock_streamlit):
        handlers.handle_error(ValueError("x"), show_user_message=False)

        mock_streamlit.error.assert_not_called()


class TestErrorContext:

    def test_suppresses_recoverable(self, handlers, mock_streamlit):
        with handlers.ErrorContext("Excluindo estudante"):
            raise RuntimeError("boom")

        mock_streamlit.error.assert_called_once_with("Erro: Falha em: Excluindo estudante")

    def test_reraises_when_not_recoverable(self, handlers):
        with pytest.raises(RuntimeError):
            with handlers.ErrorContext("Importando", recoverable=False):
                raise RuntimeError("boom")

    def test_success_message(self, handlers, mock_streamlit):
        with handlers.ErrorContext("Importação", show_success=True):
            pass

        mock_streamlit.success.assert_called_once_with("Importação concluído")


class TestErrorBoundary:

    def test_returns_default_on_error(self, handlers, mock_streamlit):
        @handlers.error_boundary(default_return=[], error_message="Erro ao carregar relatório")
        def render():
            raise KeyError("student")

        assert render() == []
        mock_streamlit.error.assert_called_once_with("Erro ao carregar relatório")

    def test_passes_through(self, handlers):
        @handlers.error_boundary()
        def render(x):
            return x + 1

        assert render(1) == 2


class TestFriendlyMessage:

    def test_validation_keeps_its_text(self, handlers):
        error = ValidationError("Preencha todos os campos obrigatórios: name", missing=["name"])

        assert handlers.friendly_message(error) == "Preencha todos os campos obrigatórios: name"

    def test_timeout_before_generic_network(self, handlers):
        assert "demorou" in handlers.friendly_message(RequestTimeoutError())

    def test_unknown_error(self, handlers):
        assert handlers.friendly_message(KeyError("x")) == "Ocorreu um erro inesperado."

    def test_control_flow_signals_pass_through(self, handlers, mock_streamlit):
        class RerunSignal(BaseException):
            pass

        with pytest.raises(RerunSignal):
            with handlers.ErrorContext("Salvando"):
                raise RerunSignal()

        mock_streamlit.error.assert_not_called()
