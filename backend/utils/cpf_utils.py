"""
Módulo utilitário para normalização, validação e formatação de CPF.
"""
import re

CPF_LENGTH = 11


class CPFUtils:
    @staticmethod
    def normalize_cpf(cpf) -> str:
        """
        Remove caracteres não numéricos do CPF.
        Parâmetros:
            cpf (str): CPF em qualquer formato
        Retorno:
            str: CPF apenas com dígitos ('' para entrada vazia ou None)
        Exemplo: '111.444.777-35' -> '11144477735'
        """
        if cpf is None:
            return ""
        return re.sub(r'[^0-9]', '', str(cpf))

    @staticmethod
    def has_cpf_length(cpf) -> bool:
        """
        Verifica apenas se o CPF normalizado tem 11 dígitos.
        Usado pela consulta em lote, que não aplica os dígitos verificadores.
        """
        return len(CPFUtils.normalize_cpf(cpf)) == CPF_LENGTH

    @staticmethod
    def _check_digit(digits: str, weight_start: int) -> int:
        total = sum(int(d) * (weight_start - i) for i, d in enumerate(digits))
        digit = 11 - (total % 11)
        return 0 if digit >= 10 else digit

    @staticmethod
    def is_valid_cpf(cpf) -> bool:
        """
        Valida CPF pelo algoritmo dos dois dígitos verificadores.
        Nunca lança exceção: qualquer entrada inválida retorna False.
        Parâmetros:
            cpf (str): CPF em qualquer formato
        Retorno:
            bool: True se válido, False caso contrário
        """
        cpf = CPFUtils.normalize_cpf(cpf)
        if len(cpf) != CPF_LENGTH or cpf == cpf[0] * CPF_LENGTH:
            return False
        if CPFUtils._check_digit(cpf[:9], 10) != int(cpf[9]):
            return False
        if CPFUtils._check_digit(cpf[:10], 11) != int(cpf[10]):
            return False
        return True

    @staticmethod
    def format_cpf(cpf) -> str:
        """Formata como 000.000.000-00 quando houver 11 dígitos; caso contrário devolve só os dígitos."""
        digits = CPFUtils.normalize_cpf(cpf)
        if len(digits) != CPF_LENGTH:
            return digits
        return f"{digits[:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:]}"

    @staticmethod
    def parse_cpf_list(text: str) -> list:
        """
        Converte texto livre (um CPF por linha) em lista de CPFs normalizados.
        Linhas sem 11 dígitos são descartadas, mantendo a ordem original.
        """
        if not text:
            return []
        cpfs = [CPFUtils.normalize_cpf(line.strip()) for line in text.splitlines()]
        return [c for c in cpfs if len(c) == CPF_LENGTH]
