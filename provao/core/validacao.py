"""
Validação de entrada na fronteira das camadas de serviço.

Os formulários WTForms (sem CSRF, pois não vêm de um request) validam
os dicionários de campos antes de qualquer escrita no banco.
"""

from typing import Any, Dict, Type

from wtforms import Form, StringField

from provao.core.erros import ValidationError


def limpar_texto(valor: Any) -> Any:
    """Filtro WTForms: remove espaços das pontas de strings."""
    return valor.strip() if isinstance(valor, str) else valor


def maiusculas(valor: Any) -> Any:
    return valor.strip().upper() if isinstance(valor, str) else valor


def validar_campos(form_cls: Type[Form], campos: Dict[str, Any]) -> Dict[str, Any]:
    """
    Valida 'campos' com o formulário informado.

    Returns:
        dict: os dados limpos (após os filtros do formulário).

    Raises:
        ValidationError: campos desconhecidos, ausentes ou inválidos.
    """
    campos = dict(campos or {})
    form = form_cls(data=campos)

    desconhecidos = sorted(set(campos) - {campo.name for campo in form})
    if desconhecidos:
        raise ValidationError(
            f"Campos desconhecidos: {', '.join(desconhecidos)}",
            {nome: ["Campo não reconhecido."] for nome in desconhecidos},
        )

    # data= não converte tipos: um número num StringField quebraria o Length
    nao_texto = {
        campo.name: ["Valor deve ser texto."]
        for campo in form
        if isinstance(campo, StringField) and campo.data is not None and not isinstance(campo.data, str)
    }
    if nao_texto:
        raise ValidationError("Dados inválidos.", nao_texto)

    if not form.validate():
        raise ValidationError("Dados inválidos.", dict(form.errors))

    return form.data
