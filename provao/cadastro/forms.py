import re

from wtforms import Form, IntegerField, StringField
from wtforms.validators import AnyOf, DataRequired, Length, Regexp
from wtforms.validators import ValidationError as CampoInvalido

from provao.core.constants import LOCALIZACOES
from provao.core.validacao import limpar_texto

# Formulários de cadastro. Recebem dicionários (data=...), não requests,
# por isso herdam de wtforms.Form e não de FlaskForm.


def _codigo_inep(form, field):
    # Opcional: só valida o formato quando informado
    if field.data and not re.fullmatch(r'\d{8}', field.data):
        raise CampoInvalido("Código INEP deve ter 8 dígitos")


class EscolaForm(Form):
    nome = StringField('Nome', filters=[limpar_texto], validators=[
        DataRequired(message="Nome é obrigatório"),
        Length(max=150, message="Nome deve ter no máximo 150 caracteres")
    ])
    codigo_inep = StringField('Código INEP', filters=[limpar_texto], validators=[_codigo_inep])
    localizacao = StringField('Localização', filters=[limpar_texto], validators=[
        DataRequired(message="Localização é obrigatória"),
        AnyOf(LOCALIZACOES, message="Localização deve ser Urbano ou Rural")
    ])


class SerieForm(Form):
    nome = StringField('Nome', filters=[limpar_texto], validators=[
        DataRequired(message="Nome é obrigatório"),
        Length(max=50)
    ])
    escola_id = IntegerField('Escola', validators=[DataRequired(message="Escola é obrigatória")])


class TurmaForm(Form):
    nome = StringField('Nome', filters=[limpar_texto], validators=[
        DataRequired(message="Nome é obrigatório"),
        Length(max=50)
    ])
    serie_id = IntegerField('Série', validators=[DataRequired(message="Série é obrigatória")])


class ProfessorForm(Form):
    nome = StringField('Nome', filters=[limpar_texto], validators=[
        DataRequired(message="Nome é obrigatório"),
        Length(min=3, max=120, message="Nome deve ter entre 3 e 120 caracteres")
    ])


class AlunoForm(Form):
    nome = StringField('Nome', filters=[limpar_texto], validators=[
        DataRequired(message="Nome é obrigatório"),
        Length(min=3, max=120, message="Nome deve ter entre 3 e 120 caracteres"),
        Regexp(r'^[A-Za-zÀ-ÖØ-öø-ÿ\s\.\']+$', message="Nome deve conter apenas letras")
    ])
    matricula = StringField('Matrícula', filters=[limpar_texto], validators=[
        DataRequired(message="Matrícula é obrigatória"),
        Length(max=30)
    ])
