"""
Modelos Relacionais (SQLAlchemy)

Hierarquia de containment: Escola -> Série -> Turma.
Alunos e Professores são independentes e se ligam às Turmas por
tabelas de associação (Matricula, TurmaProfessor).
Um Provão atende uma ou mais Turmas (ProvaoTurma) e possui Questões
ordenadas, cada uma com no máximo um Gabarito.
"""

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from provao.core.database import db


# ============================================================
# HIERARQUIA: ESCOLA -> SÉRIE -> TURMA
# ============================================================

class Escola(db.Model):
    __tablename__ = "schools"

    id = Column(Integer, primary_key=True, index=True)
    nome = Column(String(150), unique=True, nullable=False)
    codigo_inep = Column(String(8), unique=True, nullable=True)
    localizacao = Column(String(10), nullable=False)  # Urbano, Rural
    criado_em = Column(DateTime, default=func.now())

    series = relationship("Serie", back_populates="escola", order_by="Serie.nome")

    def __repr__(self):
        return f"<Escola {self.nome}>"


class Serie(db.Model):
    __tablename__ = "grade_levels"
    __table_args__ = (UniqueConstraint("escola_id", "nome", name="uq_serie_escola_nome"),)

    id = Column(Integer, primary_key=True, index=True)
    nome = Column(String(50), nullable=False)
    escola_id = Column(Integer, ForeignKey("schools.id"), nullable=False, index=True)
    criado_em = Column(DateTime, default=func.now())

    escola = relationship("Escola", back_populates="series")
    turmas = relationship("Turma", back_populates="serie", order_by="Turma.nome")

    def __repr__(self):
        return f"<Serie {self.nome}>"


class Turma(db.Model):
    __tablename__ = "classes"
    __table_args__ = (UniqueConstraint("serie_id", "nome", name="uq_turma_serie_nome"),)

    id = Column(Integer, primary_key=True, index=True)
    nome = Column(String(50), nullable=False)
    serie_id = Column(Integer, ForeignKey("grade_levels.id"), nullable=False, index=True)
    criado_em = Column(DateTime, default=func.now())

    serie = relationship("Serie", back_populates="turmas")
    matriculas = relationship("Matricula", back_populates="turma", cascade="all, delete-orphan")
    atribuicoes = relationship("TurmaProfessor", back_populates="turma", cascade="all, delete-orphan")
    vinculos_provao = relationship("ProvaoTurma", back_populates="turma", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Turma {self.nome}>"

    @property
    def rotulo(self):
        """Ex.: 'EM Castro Alves / 7º Ano / A'"""
        return f"{self.serie.escola.nome} / {self.serie.nome} / {self.nome}"


# ============================================================
# PESSOAS E VÍNCULOS
# ============================================================

class Professor(db.Model):
    __tablename__ = "teachers"

    id = Column(Integer, primary_key=True, index=True)
    nome = Column(String(120), nullable=False)
    criado_em = Column(DateTime, default=func.now())

    atribuicoes = relationship("TurmaProfessor", back_populates="professor", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Professor {self.nome}>"


class Aluno(db.Model):
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, index=True)
    nome = Column(String(120), nullable=False)
    matricula = Column(String(30), unique=True, nullable=False)  # número de matrícula (externo)
    criado_em = Column(DateTime, default=func.now())

    matriculas = relationship("Matricula", back_populates="aluno", cascade="all, delete-orphan")
    respostas = relationship("Resposta", back_populates="aluno", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Aluno {self.matricula} - {self.nome}>"


class Matricula(db.Model):
    """Vínculo ativo Aluno-Turma. Desmatricular apaga a linha."""

    __tablename__ = "enrollments"
    __table_args__ = (UniqueConstraint("aluno_id", "turma_id", name="uq_matricula_aluno_turma"),)

    id = Column(Integer, primary_key=True, index=True)
    aluno_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    turma_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    criado_em = Column(DateTime, default=func.now())

    aluno = relationship("Aluno", back_populates="matriculas")
    turma = relationship("Turma", back_populates="matriculas")

    def __repr__(self):
        return f"<Matricula aluno={self.aluno_id} turma={self.turma_id}>"


class TurmaProfessor(db.Model):
    __tablename__ = "teacher_assignments"
    __table_args__ = (UniqueConstraint("turma_id", "professor_id", name="uq_turma_professor"),)

    id = Column(Integer, primary_key=True, index=True)
    turma_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    professor_id = Column(Integer, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    criado_em = Column(DateTime, default=func.now())

    turma = relationship("Turma", back_populates="atribuicoes")
    professor = relationship("Professor", back_populates="atribuicoes")


# ============================================================
# PROVÕES, QUESTÕES E GABARITOS
# ============================================================

class Provao(db.Model):
    __tablename__ = "tests"

    id = Column(Integer, primary_key=True, index=True)
    nome = Column(String(150), nullable=False)
    descricao = Column(Text, nullable=True)
    data_aplicacao = Column(Date, nullable=True)
    criado_em = Column(DateTime, default=func.now())

    vinculos = relationship("ProvaoTurma", back_populates="provao", cascade="all, delete-orphan")
    questoes = relationship(
        "Questao",
        back_populates="provao",
        cascade="all, delete-orphan",
        order_by="Questao.ordem",
    )

    def __repr__(self):
        return f"<Provao {self.nome}>"


class ProvaoTurma(db.Model):
    __tablename__ = "test_class_links"
    __table_args__ = (UniqueConstraint("provao_id", "turma_id", name="uq_provao_turma"),)

    id = Column(Integer, primary_key=True, index=True)
    provao_id = Column(Integer, ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True)
    turma_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)

    provao = relationship("Provao", back_populates="vinculos")
    turma = relationship("Turma", back_populates="vinculos_provao")


class Questao(db.Model):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    provao_id = Column(Integer, ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True)
    disciplina = Column(String(20), nullable=False)  # Matemática, Português
    habilidade_codigo = Column(String(20), nullable=False)  # ex.: D17, EF07MA02
    ordem = Column(Integer, nullable=False)
    criado_em = Column(DateTime, default=func.now())

    provao = relationship("Provao", back_populates="questoes")
    gabarito = relationship("Gabarito", back_populates="questao", uselist=False, cascade="all, delete-orphan")
    respostas = relationship("Resposta", back_populates="questao", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Questao {self.ordem} ({self.habilidade_codigo})>"

    @property
    def gradavel(self):
        """Só conta na correção quando o gabarito existe."""
        return self.gabarito is not None


class Gabarito(db.Model):
    __tablename__ = "answer_keys"

    id = Column(Integer, primary_key=True, index=True)
    questao_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), unique=True, nullable=False)
    resposta_correta = Column(String(1), nullable=False)
    atualizado_em = Column(DateTime, default=func.now())

    questao = relationship("Questao", back_populates="gabarito")

    def __repr__(self):
        return f"<Gabarito questao={self.questao_id} {self.resposta_correta}>"


class Resposta(db.Model):
    """Alternativa marcada pelo aluno. Uma por (aluno, questão)."""

    __tablename__ = "responses"
    __table_args__ = (UniqueConstraint("aluno_id", "questao_id", name="uq_resposta_aluno_questao"),)

    id = Column(Integer, primary_key=True, index=True)
    aluno_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    questao_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    resposta = Column(String(1), nullable=False)
    atualizado_em = Column(DateTime, default=func.now())

    aluno = relationship("Aluno", back_populates="respostas")
    questao = relationship("Questao", back_populates="respostas")

    def __repr__(self):
        return f"<Resposta aluno={self.aluno_id} questao={self.questao_id} {self.resposta}>"
